from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from study_assistant.errors import ValidationError, NotFoundError, UpstreamServiceError
from study_assistant.extensions import db
from study_assistant.models.note import Note
from study_assistant.services.embedding_service import store_embeddings_for_note, generate_embedding

notes_bp = Blueprint("notes", __name__, url_prefix="/api")


def get_owned_note(note_id):
    if not isinstance(note_id, int) or isinstance(note_id, bool):
        raise ValidationError("Note ID must be an integer")
    note = Note.query.filter_by(id=note_id, user_id=current_user.id).first()
    if note is None:
        raise NotFoundError("Note not found", detail=f"note_id={note_id}")
    return note


def text_field(data, key):
    """Stripped string value of a JSON field; missing or null reads as ""."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


@notes_bp.route("/notes", methods=["GET"])
@login_required
def list_notes():
    query = Note.query.filter_by(user_id=current_user.id)

    search = request.args.get("q")
    if search:
        query = query.filter(
            db.or_(
                Note.title.ilike(f"%{search}%"),
                Note.content.ilike(f"%{search}%"),
            )
        )

    query = query.order_by(Note.uploaded_at.desc(), Note.id.desc())

    # Pagination
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", 20, type=int)
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        "notes": [n.to_dict() for n in pagination.items],
        "total": pagination.total,
        "page": pagination.page,
        "pages": pagination.pages,
    })


@notes_bp.route("/notes", methods=["POST"])
@login_required
def create_note():
    data = request.get_json(silent=True) or {}
    title = text_field(data, "title")
    content = text_field(data, "content")

    if not title or not content:
        raise ValidationError("Title and content are required")

    note = Note(user_id=current_user.id, title=title, content=content)
    db.session.add(note)
    db.session.commit()
    current_app.logger.info(f"Note created successfully: {note.id}")

    # Generate embeddings; the note is kept even if this fails
    chunks_processed = 0
    embeddings_processed = True
    try:
        chunks_processed = len(store_embeddings_for_note(note))
    except Exception as e:
        db.session.rollback()
        embeddings_processed = False
        current_app.logger.warning(f"Embedding generation failed (note {note.id} still saved): {e}")

    return jsonify({
        "message": "Note uploaded successfully!",
        "note": note.to_dict(),
        "embeddings_processed": embeddings_processed,
        "chunks_processed": chunks_processed,
    }), 201


@notes_bp.route("/notes/<int:note_id>", methods=["GET"])
@login_required
def get_note(note_id):
    note = get_owned_note(note_id)
    return jsonify(note.to_dict(include_chunk_count=True))


@notes_bp.route("/notes/<int:note_id>", methods=["DELETE"])
@login_required
def delete_note(note_id):
    note = get_owned_note(note_id)
    db.session.delete(note)
    db.session.commit()
    return jsonify({"message": "Note deleted"})


@notes_bp.route("/notes/<int:note_id>/process", methods=["POST"])
@login_required
def process_note(note_id):
    """Re-chunk and re-embed a note, replacing its stored chunks."""
    note = get_owned_note(note_id)
    try:
        rows = store_embeddings_for_note(note)
    except UpstreamServiceError:
        db.session.rollback()
        raise
    return jsonify({"success": True, "chunks_processed": len(rows)})


@notes_bp.route("/embeddings", methods=["POST"])
@login_required
def create_embedding():
    data = request.get_json(silent=True) or {}
    text = text_field(data, "text")
    if not text:
        raise ValidationError("Text is required")
    return jsonify({"embedding": generate_embedding(text)})
