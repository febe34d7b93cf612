from outreach.models import RetrievalResult
from outreach.synthesis import build_citations


def _result(index: int, title: str, similarity: float) -> RetrievalResult:
    return RetrievalResult(
        chunk_id=f"c-{index}",
        document_id=title,
        document_title=title,
        document_type="resume",
        chunk_index=index,
        chunk_type="skills",
        content="x" * 150,
        similarity=similarity,
    )


def test_citations_group_by_document_and_keep_top_five() -> None:
    results = [_result(index, "Resume" if index % 2 else "Notes", 0.9 - index / 100) for index in range(7)]

    report = build_citations(results)

    assert report.total == 7
    assert len(report.by_document["Resume"]) == 3
    assert len(report.by_document["Notes"]) == 4
    assert [citation.similarity_percent for citation in report.top_sources] == [90, 89, 88, 87, 86]


def test_preview_is_truncated_with_ellipsis() -> None:
    citation = build_citations([_result(0, "Resume", 0.834)]).top_sources[0]

    assert citation.content_preview == "x" * 100 + "..."
    assert citation.similarity_percent == 83


def test_empty_results_give_empty_report() -> None:
    report = build_citations([])

    assert report.as_dict() == {"total": 0, "by_document": {}, "top_sources": []}
