from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required
from study_assistant.errors import ValidationError, UpstreamServiceError
from study_assistant.models.study_material import StudyMaterial, MATERIAL_TYPES
from study_assistant.routes.notes import get_owned_note
from study_assistant.services.study_material_service import generate_study_material

study_materials_bp = Blueprint("study_materials", __name__, url_prefix="/api")


@study_materials_bp.route("/study-materials/generate", methods=["POST"])
@login_required
def generate():
    data = request.get_json(silent=True) or {}
    note_id = data.get("note_id")
    material_type = data.get("type")

    if not note_id:
        raise ValidationError("Note ID is required")
    if material_type not in MATERIAL_TYPES:
        raise ValidationError("Invalid type", detail=f"type must be one of {', '.join(MATERIAL_TYPES)}")

    note = get_owned_note(note_id)

    try:
        material = generate_study_material(note, material_type)
    except UpstreamServiceError as e:
        current_app.logger.error(f"Error generating study material: {e.message}")
        if e.is_rate_limited:
            return jsonify({
                "error": "Content too large. Please try with a shorter note or wait a moment and try again."
            }), 429
        return jsonify({"error": "Failed to generate study material", "detail": e.message}), e.status_code

    return jsonify({"study_material": material.to_dict()}), 201


@study_materials_bp.route("/notes/<int:note_id>/study-materials", methods=["GET"])
@login_required
def list_study_materials(note_id):
    note = get_owned_note(note_id)
    query = StudyMaterial.query.filter_by(note_id=note.id)

    material_type = request.args.get("type")
    if material_type:
        if material_type not in MATERIAL_TYPES:
            raise ValidationError("Invalid type")
        query = query.filter_by(type=material_type)

    materials = query.order_by(StudyMaterial.created_at.desc(), StudyMaterial.id.desc()).all()
    return jsonify({"study_materials": [m.to_dict() for m in materials]})
