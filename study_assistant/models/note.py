from datetime import datetime, timezone
from study_assistant.extensions import db


class Note(db.Model):
    __tablename__ = "notes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)  # immutable once stored
    uploaded_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), index=True)

    # Relationships
    chunks = db.relationship("NoteChunk", backref="note", lazy="dynamic", cascade="all, delete-orphan",
                             order_by="NoteChunk.chunk_index")
    study_materials = db.relationship("StudyMaterial", backref="note", lazy="dynamic",
                                      cascade="all, delete-orphan")

    def to_dict(self, include_chunk_count=False):
        d = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
        if include_chunk_count:
            d["chunk_count"] = self.chunks.count()
        return d
