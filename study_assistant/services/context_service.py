"""
Grounding context for the chat assistant.

assemble_context() tries similarity search first and falls back to the
user's most recent notes, then to no context at all. It never raises: a
provider outage only degrades grounding, it does not block the chat.
"""
from flask import current_app

from study_assistant.extensions import db
from study_assistant.models.note import Note
from study_assistant.services.embedding_service import EmbeddingClient, search_chunks

BASE_INSTRUCTIONS = """Instructions:
- Answer based on the provided context when possible
- Be educational and helpful
- If asked to explain concepts, break them down clearly
- Suggest study techniques when appropriate"""

GROUNDED_PROMPT = """You are a helpful study assistant. Use the following context from the user's notes to answer their questions. If the context doesn't contain relevant information, say so and provide general educational guidance.

{heading}
{context}

""" + BASE_INSTRUCTIONS

EMPTY_PROMPT = """You are a helpful study assistant. The user doesn't have any notes uploaded yet, or there was a technical issue accessing them. Provide general educational guidance and encourage them to upload their study materials.

Instructions:
- Be educational and helpful
- Explain concepts clearly
- Suggest study techniques
- Encourage uploading notes for personalized assistance"""

NOTE_DIVIDER = "\n\n---\n\n"


class GroundedContext:
    """Context built from chunks that cleared the similarity threshold."""

    mode = "embeddings"
    used_embeddings = True

    def __init__(self, chunks):
        self.chunks = chunks
        self.text = "\n\n".join(c["content"] for c in chunks)

    def system_prompt(self):
        return GROUNDED_PROMPT.format(heading="Context from relevant note sections:", context=self.text)


class RecentNotesContext:
    """Fallback context built from the most recently uploaded notes."""

    mode = "recent_notes"
    used_embeddings = False

    def __init__(self, notes):
        self.notes = notes
        self.text = NOTE_DIVIDER.join(f"{n.title}:\n{n.content}" for n in notes)

    def system_prompt(self):
        return GROUNDED_PROMPT.format(heading="Context from recent notes:", context=self.text)


class EmptyContext:
    mode = "none"
    used_embeddings = False
    text = ""

    def system_prompt(self):
        return EMPTY_PROMPT


def retrieve_grounded_context(query, user_id, client=None):
    """Embed the query and search; None when nothing clears the threshold."""
    client = client or EmbeddingClient()
    query_vector = client.embed(query)
    chunks = search_chunks(
        query_vector,
        user_id,
        threshold=current_app.config["MATCH_THRESHOLD"],
        top_k=current_app.config["MATCH_COUNT"],
    )
    if not chunks:
        return None
    current_app.logger.info(f"Found {len(chunks)} relevant chunks via embeddings")
    return GroundedContext(chunks)


def recent_notes(user_id, limit):
    return (
        Note.query.filter_by(user_id=user_id)
        .order_by(Note.uploaded_at.desc(), Note.id.desc())
        .limit(limit)
        .all()
    )


def assemble_context(query, user_id, client=None):
    """Return GroundedContext, RecentNotesContext or EmptyContext for a query."""
    try:
        context = retrieve_grounded_context(query, user_id, client=client)
        if context is not None:
            return context
        current_app.logger.info("No chunks matched, falling back to recent notes")
    except Exception as e:
        current_app.logger.warning(f"Embeddings failed, falling back to recent notes: {e}")

    try:
        notes = recent_notes(user_id, current_app.config["RECENT_NOTES_FALLBACK"])
    except Exception as e:
        current_app.logger.error(f"Fallback also failed: {e}")
        db.session.rollback()
        return EmptyContext()

    if not notes:
        return EmptyContext()
    current_app.logger.info(f"Using {len(notes)} recent notes as fallback context")
    return RecentNotesContext(notes)
