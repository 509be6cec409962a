"""
Chat query routing.

determine_model_for_query() picks a query type and the model best suited to
it from plain keyword rules; process_query() sends the query to that model,
falling back to another configured provider and finally to a canned answer.

Routing table (first matching branch wins, hope detection runs before all):
    hope / emotional support phrases  -> HOPE | EMOTIONAL_SUPPORT, claude
    treatment, therapy, drug, ...     -> TREATMENT, claude
    clinical trial, study, ...        -> CLINICAL_TRIAL, gpt
    what is, definition, explain, ... -> MEDICAL_TERM, claude
    research, evidence, ...           -> RESEARCH, gemini when synthesis is
                                         asked for (compare, meta-analysis,
                                         ...), otherwise claude
    anything else                     -> GENERAL, claude
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from sophera.assistant.types import ModelType, QueryResponse, QueryType, Source
from sophera.hope.service import analyze_hope_query, generate_hope_message
from sophera.llm import Provider, available_providers, call_llm
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter, log_event
from sophera.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

TREATMENT_TERMS = ("treatment", "therapy", "medication", "drug", "side effect", "efficacy")
CLINICAL_TRIAL_TERMS = ("clinical trial", "study", "enrollment", "eligibility")
MEDICAL_TERM_TERMS = ("what does", "what is", "definition", "mean", "explain")
RESEARCH_TERMS = ("research", "studies show", "evidence", "literature", "publication")
SYNTHESIS_TERMS = (
    "compare",
    "synthesis",
    "multiple",
    "studies",
    "literature review",
    "meta-analysis",
    "consensus",
)

SYSTEM_INSTRUCTIONS: dict[QueryType, str] = {
    QueryType.TREATMENT: (
        "You are Sophera, a research assistant for people living with cancer. "
        "Explain treatment options with their benefits, risks and evidence. "
        "Encourage the patient to confirm decisions with their care team."
    ),
    QueryType.CLINICAL_TRIAL: (
        "You are Sophera, a research assistant for people living with cancer. "
        "Explain how clinical trials work, typical eligibility criteria and how "
        "to search registries. Never claim a patient is eligible."
    ),
    QueryType.MEDICAL_TERM: (
        "You are Sophera. Explain medical terms in plain language a patient "
        "can follow, then say briefly why the term matters for cancer care."
    ),
    QueryType.RESEARCH: (
        "You are Sophera, a research assistant for people living with cancer. "
        "Summarize what the medical literature says, note the strength of the "
        "evidence and cite sources where you can."
    ),
    QueryType.GENERAL: (
        "You are Sophera, a supportive assistant for people living with cancer. "
        "Answer clearly and kindly. You do not replace medical advice."
    ),
}

LITERATURE_SOURCE = Source(title="Information from medical literature", type="combined_sources")

CANNED_RESPONSES: dict[QueryType, tuple[str, list[Source] | None]] = {
    QueryType.TREATMENT: (
        "Treatment for cancer usually combines several approaches. The most common are:\n\n"
        "1. Surgery to remove the tumor and nearby lymph nodes\n"
        "2. Chemotherapy, before or after surgery or as the main treatment\n"
        "3. Radiation therapy, often given together with chemotherapy\n"
        "4. Targeted therapy for tumors with specific markers such as HER2\n"
        "5. Immunotherapy, which helps the immune system attack cancer cells\n\n"
        "Which approach fits depends on the stage and location of the cancer, your "
        "overall health and the tumor's characteristics. Your oncology team can "
        "explain which options apply to you.",
        [Source(title="NCCN Guidelines for Patients", type="medical_guideline")],
    ),
    QueryType.CLINICAL_TRIAL: (
        "Clinical trials test new treatments or new ways of using existing ones. "
        "Eligibility usually depends on diagnosis, stage, earlier treatments and "
        "general health. You can search open trials on ClinicalTrials.gov and ask "
        "your oncologist whether any are a good match for you.",
        [
            Source(
                title="ClinicalTrials.gov",
                url="https://clinicaltrials.gov",
                type="clinical_trial_database",
            )
        ],
    ),
    QueryType.MEDICAL_TERM: (
        "I can explain medical terms in plain language. Please tell me the exact "
        "term as it appears in your report or conversation with your doctor, and "
        "I'll describe what it means and why it matters for your care.",
        None,
    ),
    QueryType.RESEARCH: (
        "Medical research on cancer moves quickly. Large reviews and clinical "
        "guidelines are the most reliable summaries of what the evidence shows. "
        "I can help you make sense of specific studies if you share their titles "
        "or the questions you want answered.",
        [LITERATURE_SOURCE],
    ),
    QueryType.GENERAL: (
        "I'm here to help with questions about treatments, clinical trials, "
        "medical terms and research, or simply to talk through how you're "
        "feeling. What would you like to explore?",
        None,
    ),
}


class RoutingDecision(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    model_type: ModelType
    query_type: QueryType


def _contains_any(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


def determine_model_for_query(query: str) -> RoutingDecision:
    lowered = query.lower()

    hope_type = analyze_hope_query(query)
    if hope_type is not None:
        return RoutingDecision(model_type=ModelType.CLAUDE, query_type=hope_type)

    if _contains_any(lowered, TREATMENT_TERMS):
        return RoutingDecision(model_type=ModelType.CLAUDE, query_type=QueryType.TREATMENT)
    if _contains_any(lowered, CLINICAL_TRIAL_TERMS):
        return RoutingDecision(model_type=ModelType.GPT, query_type=QueryType.CLINICAL_TRIAL)
    if _contains_any(lowered, MEDICAL_TERM_TERMS):
        return RoutingDecision(model_type=ModelType.CLAUDE, query_type=QueryType.MEDICAL_TERM)
    if _contains_any(lowered, RESEARCH_TERMS):
        model = ModelType.GEMINI if _contains_any(lowered, SYNTHESIS_TERMS) else ModelType.CLAUDE
        return RoutingDecision(model_type=model, query_type=QueryType.RESEARCH)

    return RoutingDecision(model_type=ModelType.CLAUDE, query_type=QueryType.GENERAL)


def select_provider(model: ModelType | str) -> Provider | None:
    """
    Provider that will answer for model.

    The routed model's own provider when it has credentials, otherwise the
    first configured one (claude, gpt, gemini). None when nothing is configured.
    """
    providers = available_providers()
    try:
        wanted = Provider(ModelType(model).value)
    except ValueError:
        # biobert has no hosted provider
        wanted = None
    if wanted in providers:
        return wanted
    return providers[0] if providers else None


def canned_response(query_type: QueryType | str, model: ModelType | str) -> QueryResponse:
    try:
        content, sources = CANNED_RESPONSES[QueryType(query_type)]
    except (KeyError, ValueError):
        content, sources = CANNED_RESPONSES[QueryType.GENERAL]
    return QueryResponse(content=content, sources=sources, model_used=ModelType(model).value)


def detect_sources(content: str) -> list[Source] | None:
    if "Source" in content or "Reference" in content:
        return [LITERATURE_SOURCE]
    return None


def build_chat_prompt(query: str, history: Sequence[tuple[str, str]] = ()) -> str:
    lines = []
    if history:
        lines.append("Conversation so far:")
        for role, content in history:
            lines.append(f"{role}: {sanitize_for_prompt(content, max_length=1000)}")
        lines.append("")
    lines.append(f"user: {sanitize_for_prompt(query, max_length=4000)}")
    return "\n".join(lines)


def process_query(
    query: str,
    preferred_model: ModelType | str | None = None,
    user_id: str | None = None,
    history: Sequence[tuple[str, str]] = (),
) -> QueryResponse:
    """
    Answer a chat query.

    A preferred model replaces the routed model but not the query type.
    Hope-type queries from a known user are answered from the hope module.
    Never raises for LLM problems; the canned answer for the query type is
    returned instead.

    Args:
        query: The user's message
        preferred_model: Model requested by the client, if any
        user_id: Caller, needed for hope answers
        history: Earlier (role, content) turns, oldest first

    Side Effects:
        - Calls one LLM provider (with retries) when any is configured
        - Increments assistant.* counters
    """
    decision = determine_model_for_query(query)
    query_type = QueryType(decision.query_type)
    model = ModelType(preferred_model) if preferred_model else ModelType(decision.model_type)

    log_event(
        "assistant.route",
        query_type=query_type.value,
        model=model.value,
        preferred=bool(preferred_model),
    )

    if user_id and query_type in (QueryType.HOPE, QueryType.EMOTIONAL_SUPPORT):
        hope = generate_hope_message(user_id, query, query_type)
        counter("assistant.hope_answer")
        return QueryResponse(content=hope.content, sources=None, model_used=model.value)

    provider = select_provider(model)
    if provider is None:
        counter("assistant.canned.no_provider")
        return canned_response(query_type, model)

    system_instruction = SYSTEM_INSTRUCTIONS.get(query_type, SYSTEM_INSTRUCTIONS[QueryType.GENERAL])
    try:
        content = call_llm(
            build_chat_prompt(query, history),
            provider=provider,
            counter_prefix="assistant",
            system_instruction=system_instruction,
        ).strip()
    except Exception as e:
        logger.error("Assistant %s call failed, using canned response: %s", provider.value, e)
        counter("assistant.canned.error")
        return canned_response(query_type, model)

    if not content:
        counter("assistant.canned.empty")
        return canned_response(query_type, model)

    if provider.value != model.value:
        counter("assistant.provider_fallback")
    return QueryResponse(
        content=content,
        sources=detect_sources(content),
        model_used=provider.value,
    )
