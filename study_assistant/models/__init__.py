# Import all models so SQLAlchemy sees them
from study_assistant.models.user import User  # noqa
from study_assistant.models.note import Note  # noqa
from study_assistant.models.note_chunk import NoteChunk  # noqa
from study_assistant.models.study_material import StudyMaterial  # noqa
