import json
from datetime import datetime, timezone
from study_assistant.extensions import db

MATERIAL_TYPES = ("flashcard", "summary", "quiz")


class StudyMaterial(db.Model):
    __tablename__ = "study_materials"

    id = db.Column(db.Integer, primary_key=True)
    note_id = db.Column(db.Integer, db.ForeignKey("notes.id"), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # "flashcard" / "summary" / "quiz"
    content_json = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    @property
    def content(self):
        return json.loads(self.content_json)

    @content.setter
    def content(self, value):
        self.content_json = json.dumps(value, ensure_ascii=False)

    def to_dict(self):
        return {
            "id": self.id,
            "note_id": self.note_id,
            "type": self.type,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
