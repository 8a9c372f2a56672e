import json
import re

from flask import current_app

from study_assistant.errors import ValidationError
from study_assistant.extensions import db
from study_assistant.models.study_material import StudyMaterial, MATERIAL_TYPES
from study_assistant.services.openrouter import OpenRouterService

CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "\n\n[Note: Content truncated for processing...]"
PARSE_FAILED = "Failed to parse response"

PROMPTS = {
    "flashcard": (
        "You are an expert educator. Create flashcards from the given content. "
        "Return ONLY a valid JSON array, no markdown formatting or explanations.",
        'Create 5-10 flashcards from this content. Return as a JSON array with "question" and "answer" '
        "fields. Do not use markdown code blocks, return only the JSON:\n\n{content}",
    ),
    "summary": (
        "You are an expert summarizer. Create concise, comprehensive summaries.",
        "Create a comprehensive summary of this content, highlighting key concepts and important "
        "details:\n\n{content}",
    ),
    "quiz": (
        "You are an expert educator. Create quiz questions from the given content. "
        "Return ONLY a valid JSON array, no markdown formatting or explanations.",
        'Create 5-8 multiple choice quiz questions from this content. Return as a JSON array with '
        '"question", "options" array, and "correctAnswer" index. Do not use markdown code blocks, '
        "return only the JSON:\n\n{content}",
    ),
}

_FENCE = re.compile(r"^```[\w-]*\s*\n?(.*?)\s*```$", re.DOTALL)


def truncate_content(content, max_tokens=8000):
    """Cut content to roughly max_tokens tokens (4 chars each), marking the cut."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(content) <= max_chars:
        return content
    return content[:max_chars] + TRUNCATION_MARKER


# Parse pipeline: each step returns (value, None) or (None, reason).

def strip_code_fence(text):
    text = text.strip()
    match = _FENCE.match(text)
    if match:
        return match.group(1).strip(), None
    return text, None


def parse_json(text):
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        return None, f"invalid JSON: {e}"


def _is_flashcard(item):
    return isinstance(item, dict) and isinstance(item.get("question"), str) and isinstance(item.get("answer"), str)


def _is_quiz_question(item):
    if not isinstance(item, dict) or not isinstance(item.get("question"), str):
        return False
    options = item.get("options")
    answer = item.get("correctAnswer")
    if not isinstance(options, list) or not options:
        return False
    return isinstance(answer, int) and not isinstance(answer, bool) and 0 <= answer < len(options)


SHAPE_CHECKS = {
    "flashcard": _is_flashcard,
    "quiz": _is_quiz_question,
}


def check_shape(material_type):
    item_ok = SHAPE_CHECKS[material_type]

    def step(value):
        if not isinstance(value, list) or not value:
            return None, "expected a non-empty JSON array"
        bad = [i for i, item in enumerate(value) if not item_ok(item)]
        if bad:
            return None, f"items {bad} do not match the {material_type} shape"
        return value, None

    return step


def placeholder(material_type, raw):
    if material_type == "flashcard":
        return [{"question": PARSE_FAILED, "answer": raw}]
    if material_type == "quiz":
        return [{"question": PARSE_FAILED, "options": ["Please try again"], "correctAnswer": 0}]
    return {"summary": raw}


def parse_material(material_type, raw):
    """
    Turn a completion into the payload for material_type.

    Returns (content, parsed_ok). Never raises; an unusable response yields
    the type's placeholder.
    """
    if material_type == "summary":
        return {"summary": raw}, True

    value = raw
    for step in (strip_code_fence, parse_json, check_shape(material_type)):
        value, reason = step(value)
        if reason is not None:
            current_app.logger.warning(f"Failed to parse {material_type} response ({reason}); raw: {raw[:200]}")
            return placeholder(material_type, raw), False
    return value, True


def generate_study_material(note, material_type, service=None):
    """
    Generate and persist one study material for a note.

    Parse failures still produce a stored placeholder; provider failures
    propagate as UpstreamServiceError.
    """
    if material_type not in MATERIAL_TYPES:
        raise ValidationError("Invalid type", detail=f"type must be one of {', '.join(MATERIAL_TYPES)}")

    config = current_app.config
    service = service or OpenRouterService()
    content = truncate_content(note.content, config["STUDY_MATERIAL_MAX_INPUT_TOKENS"])
    system_prompt, user_prompt = PROMPTS[material_type]

    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt.format(content=content)},
    ]
    text = service.chat_completion(
        messages,
        model=config["STUDY_MATERIAL_MODEL"],
        temperature=config["STUDY_MATERIAL_TEMPERATURE"],
        max_tokens=config["STUDY_MATERIAL_MAX_TOKENS"],
    )

    payload, parsed_ok = parse_material(material_type, text)
    material = StudyMaterial(note_id=note.id, type=material_type, content=payload)
    db.session.add(material)
    db.session.commit()
    current_app.logger.info(
        f"Stored {material_type} #{material.id} for note {note.id}" + ("" if parsed_ok else " (placeholder)")
    )
    return material
