# Fichier: caseprep/services/prompt_builder.py
"""Assemble the single prompt sent to the feedback model.

The model's reply is parsed mechanically downstream: it must contain exactly
one of :data:`PASS_LINE` or :data:`FAIL_LINE` on its own line.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from caseprep.models.case.business_case_model import BusinessCase, CaseSection
from caseprep.schemas.feedback.case_feedback_schema import ConversationRole, ConversationTurn

SENTINEL_LABEL = "CRITERIA MET"
PASS_TOKEN = "Yes"
FAIL_TOKEN = "No"
PASS_LINE = f"{SENTINEL_LABEL}: {PASS_TOKEN}"
FAIL_LINE = f"{SENTINEL_LABEL}: {FAIL_TOKEN}"

TURN_SEPARATOR = "\n\n---\n\n"
ROLE_LABELS = {
    ConversationRole.INTERVIEWER: "Interviewer",
    ConversationRole.CANDIDATE: "Candidate",
}
NO_HISTORY = "No previous conversation"

LANGUAGE_NAMES = {
    "en": "English",
    "sv": "Swedish",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "nl": "Dutch",
    "no": "Norwegian",
    "da": "Danish",
    "fi": "Finnish",
}

INTERVIEWER_BRIEF = """You are a senior consultant at a leading management consulting firm (McKinsey, BCG or Bain) interviewing a candidate in a case interview.
You are methodical, professional and coaching, but you hold the candidate to a high standard of clear, logical reasoning.

Your tasks in this interaction:
1. Guide the candidate through the case step by step and provide relevant information when needed.
2. Make sure the candidate's reasoning covers the core aspects of the current section.
3. Judge whether the candidate meets all of the criteria required to move on.
4. If the candidate meets all criteria, do not ask a follow-up question: give a short clarifying wrap-up only.
5. If the candidate asks a question, answer very briefly without giving away too much guidance.
6. Only share specific figures from the CASE DATA block when the candidate actively asks for that kind of information or their reasoning naturally leads to it. Never reveal the whole CASE DATA list and never disclose more data points than the candidate steers the conversation towards."""


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _block(title: str, body: Optional[str]) -> Optional[str]:
    if not _has_text(body):
        return None
    return f"{title}:\n{body.strip()}"


def serialize_turn(turn: ConversationTurn) -> str:
    label = ROLE_LABELS[turn.role]
    lines = [f"{label}: {turn.content.strip()}"]
    for url in turn.attachments:
        lines.append(f"[Sketch]\n![Sketch]({url})")
    return "\n".join(lines)


def serialize_history(turns: Iterable[ConversationTurn]) -> str:
    """Render the transcript verbatim; nothing is summarised or truncated."""
    return TURN_SEPARATOR.join(serialize_turn(turn) for turn in turns)


def language_name(code: Optional[str]) -> str:
    if not code:
        return LANGUAGE_NAMES["en"]
    return LANGUAGE_NAMES.get(code.lower(), code)


def _verdict_instructions() -> str:
    return f"""When you assess the candidate's answer:

If the answer meets the criteria, write exactly:
{PASS_LINE}
on a line of its own, with no other text before or after it on that line, and give a short clarifying wrap-up without follow-up questions.

If the answer does not meet the criteria, write exactly:
{FAIL_LINE}
on a line of its own, with no other text before or after it on that line.

You must not use any other variant (such as "Partially") and must not add anything else to that line.
This is a technical format used to trigger the next step in the system."""


def build_prompt(
    business_case: BusinessCase,
    section: CaseSection,
    conversation_history: Sequence[ConversationTurn],
    latest_message: str,
    sketch_description: Optional[str] = None,
) -> str:
    """Return the full prompt text for one candidate submission.

    Blocks backed by optional section fields, and the sketch analysis, are
    left out entirely when empty.
    """

    section_lines = [f"Section: {section.title}", f"Question: {section.prompt.strip()}"]
    if _has_text(section.ai_instructions):
        section_lines.append(f"AI instructions: {section.ai_instructions.strip()}")

    case_lines = [
        f"Title: {business_case.title}",
        f"Company: {business_case.company}",
        f"Industry: {business_case.industry}",
    ]

    history_text = serialize_history(conversation_history) if conversation_history else NO_HISTORY

    blocks = [
        INTERVIEWER_BRIEF,
        f"Reply in {language_name(business_case.language)}.",
        "---",
        "CASE STUDY\n" + "\n".join(case_lines),
        "CURRENT SECTION\n" + "\n".join(section_lines),
        _block("CASE DATA", section.case_data),
        _block("RELEVANT GRAPH OR IMAGE", section.graph_description),
        _block("HINT AVAILABLE TO THE CANDIDATE", section.hint),
        _block("ASSESSMENT CRITERIA FOR THIS SECTION", section.criteria),
        f"CONVERSATION HISTORY:\n{history_text}",
        f"CANDIDATE'S LATEST ANSWER:\n{latest_message.strip()}",
        _block("ANALYSIS OF THE CANDIDATE'S SKETCH", sketch_description),
        "---",
        _verdict_instructions(),
    ]
    return "\n\n".join(block for block in blocks if block)
