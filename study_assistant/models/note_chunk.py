import numpy as np
from study_assistant.extensions import db


class NoteChunk(db.Model):
    __tablename__ = "note_embeddings"

    id = db.Column(db.Integer, primary_key=True)
    note_id = db.Column(db.Integer, db.ForeignKey("notes.id"), nullable=False, index=True)
    content_chunk = db.Column(db.Text, nullable=False)
    embedding = db.Column(db.LargeBinary, nullable=False)  # float32 numpy array as bytes
    chunk_index = db.Column(db.Integer, nullable=False)

    __table_args__ = (db.UniqueConstraint("note_id", "chunk_index", name="uq_chunk_note_index"),)

    @property
    def vector(self):
        return np.frombuffer(self.embedding, dtype=np.float32)

    def to_dict(self):
        return {
            "id": self.id,
            "note_id": self.note_id,
            "content_chunk": self.content_chunk,
            "chunk_index": self.chunk_index,
        }
