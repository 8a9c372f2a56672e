from flask import Blueprint, request, jsonify, Response, current_app
from flask_login import login_required
from study_assistant.errors import ValidationError
from study_assistant.routes.notes import get_owned_note, text_field
from study_assistant.services.tts_service import ElevenLabsService

tts_bp = Blueprint("tts", __name__, url_prefix="/api/tts")


@tts_bp.route("/generate", methods=["POST"])
@login_required
def generate_speech():
    data = request.get_json(silent=True) or {}
    note_id = data.get("note_id")
    text = text_field(data, "text")
    title = text_field(data, "title")

    service = ElevenLabsService(voice_id=text_field(data, "voice_id") or None)

    if not text and note_id:
        note = get_owned_note(note_id)
        text = note.content.strip()
        title = title or note.title
    if not text:
        raise ValidationError("Text is required for speech generation")

    current_app.logger.info(f"Generating speech for note: {title or note_id}")
    audio = service.synthesize(text)

    return Response(
        audio,
        mimetype="audio/mpeg",
        headers={
            "Content-Length": str(len(audio)),
            "Content-Disposition": f'attachment; filename="note-{note_id or "audio"}.mp3"',
            "Cache-Control": "public, max-age=3600",
        },
    )


@tts_bp.route("/voices", methods=["GET"])
@login_required
def list_voices():
    voices = ElevenLabsService().list_voices()
    return jsonify({"voices": voices, "count": len(voices)})
