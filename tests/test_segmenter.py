from __future__ import annotations

import pytest

from outreach.ingest import DocumentSegmenter, SegmenterConfig, segment
from outreach.models import CHUNK_TYPES, DocumentType

RESUME_TEXT = """Jane Doe
jane@example.com | Berlin

Summary: Seasoned engineer building reliable backends for payments.
Skills: Python, Go
Experience: 5 years at Acme leading the platform team
Education
BSc Computer Science, TU Berlin
"""


def test_resume_lines_are_grouped_by_section() -> None:
    chunks = segment(RESUME_TEXT, DocumentType.RESUME)

    assert [chunk.chunk_type for chunk in chunks] == [
        "personal_details",
        "summary",
        "skills",
        "experience",
        "education",
    ]
    assert chunks[2].content == "Skills: Python, Go"
    assert chunks[3].content.startswith("Experience: 5 years at Acme")
    assert chunks[4].content == "BSc Computer Science, TU Berlin"
    assert all(chunk.metadata["section"] == chunk.chunk_type for chunk in chunks)


def test_chunk_indices_are_dense_and_ordered() -> None:
    chunks = segment(RESUME_TEXT, DocumentType.RESUME)

    assert [chunk.chunk_index for chunk in chunks] == list(range(len(chunks)))


@pytest.mark.parametrize(
    "document_type, text",
    [
        (DocumentType.RESUME, RESUME_TEXT),
        (DocumentType.PERSONAL_INFO, "I grew up in Lisbon.\nMy goal is to lead a data team.\nI value honesty."),
        (DocumentType.COMPANY_RESEARCH, "Acme sells payments.\n\nOur culture is remote first."),
        (DocumentType.JOB_DESCRIPTION, "We need a backend engineer with Python experience."),
        (DocumentType.NOTE, "Met the hiring manager at PyCon."),
    ],
)
def test_chunk_types_stay_within_vocabulary(document_type: DocumentType, text: str) -> None:
    chunks = segment(text, document_type)

    assert chunks
    assert {chunk.chunk_type for chunk in chunks} <= set(CHUNK_TYPES[document_type])


def test_empty_text_yields_no_chunks() -> None:
    assert segment("", DocumentType.RESUME) == []
    assert segment("   \n\n ", DocumentType.NOTE) == []


def test_long_resume_section_is_sub_split_without_losing_words() -> None:
    sentences = [f"Shipped release number {index} on time and under budget." for index in range(20)]
    text = "Experience: Senior engineer at Acme.\n" + "\n".join(sentences)

    chunks = DocumentSegmenter(SegmenterConfig(sub_chunk_chars=200)).segment(text, DocumentType.RESUME)

    assert len(chunks) > 1
    assert all(len(chunk.content) <= 200 for chunk in chunks)
    joined = " ".join(chunk.content for chunk in chunks)
    for sentence in sentences:
        assert sentence in joined


def test_resume_without_recognised_content_falls_back_to_general() -> None:
    chunks = segment("Skills:\nExperience:", DocumentType.RESUME)

    assert chunks
    assert {chunk.chunk_type for chunk in chunks} == {"general"}
    assert chunks[0].metadata["method"] == "fallback"


def test_personal_info_is_grouped_in_category_order() -> None:
    text = "\n".join(
        [
            "I value transparency in teams.",
            "I grew up in Porto and studied physics.",
            "My goal is to move into platform engineering.",
            "I prefer small teams and async work.",
        ]
    )

    chunks = segment(text, DocumentType.PERSONAL_INFO)

    assert [chunk.chunk_type for chunk in chunks] == ["preferences", "goals", "values"]
    assert "Porto" in chunks[2].content


def test_personal_info_without_keywords_is_background() -> None:
    chunks = segment("Born in Lisbon.\nMoved to Berlin in 2019.", DocumentType.PERSONAL_INFO)

    assert len(chunks) == 1
    assert chunks[0].chunk_type == "background"
    assert chunks[0].content == "Born in Lisbon.\nMoved to Berlin in 2019."


def test_company_paragraphs_are_classified() -> None:
    text = "\n\n".join(
        [
            "Acme was started in 2012 in Berlin.",
            "Our mission is to make payments boring.",
            "The core product is a card issuing API.",
            "Engineering runs on Kotlin and Postgres; the stack is boring on purpose.",
            "Recent launch: instant payouts in Europe.",
            "The CEO previously ran a bank.",
        ]
    )

    chunks = segment(text, DocumentType.COMPANY_RESEARCH)

    assert [chunk.chunk_type for chunk in chunks] == [
        "overview",
        "culture",
        "products",
        "tech_stack",
        "recent_news",
        "leadership",
    ]
    assert [chunk.metadata["paragraph"] for chunk in chunks] == list(range(6))


def test_unknown_document_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        segment("text", "invoice")


def test_every_non_header_line_is_covered() -> None:
    chunks = segment(RESUME_TEXT, DocumentType.RESUME)
    covered = "\n".join(chunk.content for chunk in chunks)

    lines = [line.strip() for line in RESUME_TEXT.splitlines() if line.strip()]
    content_lines = [line for line in lines if line != "Education"]

    assert all(line in covered for line in content_lines)
