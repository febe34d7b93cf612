from outreach.models import EmailType
from outreach.retrieval import ContextBundle
from outreach.synthesis import SYSTEM_PROMPT, build_email_prompt
from outreach.synthesis.prompt_builder import BEHAVIOURAL_DIRECTIVE, context_sections


def _bundle() -> ContextBundle:
    bundle = ContextBundle()
    bundle.resume["skills"].append("Python, Go")
    bundle.resume["experience"].append("5 years at Acme")
    bundle.personal["goals"].append("Lead a platform team")
    bundle.company["overview"].append("Acme issues cards")
    bundle.company["culture"].append("Remote first")
    bundle.other.append("Met the CTO at PyCon")
    return bundle


def test_system_prompt_is_loaded_from_template() -> None:
    assert SYSTEM_PROMPT.startswith("You are an expert email writer")
    assert "SOURCES USED:" in SYSTEM_PROMPT


def test_prompt_contains_request_target_and_sections_in_order() -> None:
    prompt = build_email_prompt(
        _bundle(),
        query="Ask for an intro call",
        target_company="Acme",
        target_role="Staff Engineer",
        focus_areas=["distributed systems", ""],
        email_type=EmailType.COLD_OUTREACH,
    )

    assert prompt.startswith("Generate a cold outreach email")
    assert "REQUEST: Ask for an intro call" in prompt
    assert "TARGET: Staff Engineer at Acme" in prompt
    assert "FOCUS AREAS: distributed systems" in prompt
    labels = ["MY SKILLS:", "MY EXPERIENCE:", "MY GOALS:", "ABOUT Acme:", "Acme CULTURE:", "ADDITIONAL CONTEXT:"]
    positions = [prompt.index(label) for label in labels]
    assert positions == sorted(positions)
    assert prompt.rstrip().endswith(BEHAVIOURAL_DIRECTIVE)


def test_empty_sections_are_omitted() -> None:
    prompt = build_email_prompt(ContextBundle(), query="Hello")

    assert "MY SKILLS" not in prompt
    assert "FOCUS AREAS" not in prompt
    assert "TARGET: the role at the company" in prompt
    assert context_sections(ContextBundle()) == []


def test_missing_company_uses_generic_labels() -> None:
    labels = [label for label, _ in context_sections(_bundle())]

    assert "ABOUT the company" in labels
    assert "the company CULTURE" in labels
