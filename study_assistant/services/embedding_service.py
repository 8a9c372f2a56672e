from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
import requests
from flask import current_app

from study_assistant.errors import EmbeddingError
from study_assistant.extensions import db
from study_assistant.models.note import Note
from study_assistant.models.note_chunk import NoteChunk
from study_assistant.services.chunking import chunk_text


class EmbeddingClient:
    """
    Wrapper around an OpenAI-compatible embeddings endpoint.

    Configuration is read once at construction so that embed() can run in
    worker threads outside the application context.
    """

    SERVICE_NAME = "Embedding"

    def __init__(self):
        self.base_url = current_app.config["EMBEDDING_BASE_URL"]
        self.api_key = current_app.config["EMBEDDING_API_KEY"]
        self.model = current_app.config["EMBEDDING_MODEL"]
        self.dimensions = current_app.config.get("EMBEDDING_DIMENSIONS")

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def embed(self, text):
        """Return the embedding vector for one string. No retry."""
        try:
            resp = requests.post(
                f"{self.base_url}/embeddings",
                headers=self._headers(),
                json={"input": text, "model": self.model},
                timeout=60,
            )
        except requests.RequestException as e:
            raise EmbeddingError(f"Failed to generate embedding: {e}")

        if not resp.ok:
            raise EmbeddingError.from_response(self.SERVICE_NAME, resp)

        try:
            vector = resp.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise EmbeddingError("Embedding response did not contain a vector", detail=resp.text[:500])

        if not isinstance(vector, list) or not vector:
            raise EmbeddingError("Embedding response did not contain a vector")
        if self.dimensions and len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        return [float(x) for x in vector]


def generate_embedding(text):
    """Generate an embedding vector for the given text."""
    return EmbeddingClient().embed(text)


def _embed_all(client, chunks, max_workers):
    """Embed chunks concurrently; results come back in chunk order."""
    vectors = [None] * len(chunks)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="embed") as pool:
        futures = {pool.submit(client.embed, chunk): i for i, chunk in enumerate(chunks)}
        for future in as_completed(futures):
            vectors[futures[future]] = future.result()
    return vectors


def store_embeddings_for_note(note, client=None):
    """
    Chunk a note, embed every chunk and replace the note's stored chunk set.

    Raises EmbeddingError if any chunk fails; nothing is written in that case.
    Returns the list of persisted NoteChunk rows.
    """
    client = client or EmbeddingClient()
    chunks = chunk_text(note.content, max_chunk_size=current_app.config["CHUNK_SIZE"])
    current_app.logger.info(f"Processing {len(chunks)} chunks for note {note.id}")

    vectors = []
    if chunks:
        workers = min(current_app.config.get("EMBEDDING_WORKERS", 8), len(chunks))
        vectors = _embed_all(client, chunks, workers)

    # Remove old chunks for this note
    NoteChunk.query.filter_by(note_id=note.id).delete()

    rows = []
    for index, (chunk, vec) in enumerate(zip(chunks, vectors)):
        row = NoteChunk(
            note_id=note.id,
            content_chunk=chunk,
            embedding=np.asarray(vec, dtype=np.float32).tobytes(),
            chunk_index=index,
        )
        db.session.add(row)
        rows.append(row)

    db.session.commit()
    current_app.logger.info(f"Stored {len(rows)} embeddings for note {note.id}")
    return rows


def search_chunks(query_vector, user_id, threshold=0.7, top_k=5):
    """
    Return the user's stored chunks most similar to query_vector.

    Args:
        query_vector: embedding of the query
        user_id: restrict to this user's notes
        threshold: minimum cosine similarity
        top_k: number of results to return

    Returns:
        list of dicts with content, note_id, chunk_index, similarity,
        ordered by descending similarity
    """
    query_vec = np.asarray(query_vector, dtype=np.float32)
    query_norm = np.linalg.norm(query_vec)
    if query_norm == 0:
        return []

    rows = (
        db.session.query(NoteChunk)
        .join(Note)
        .filter(Note.user_id == user_id)
        .order_by(NoteChunk.note_id, NoteChunk.chunk_index)
        .all()
    )

    results = []
    for row in rows:
        stored_vec = row.vector
        if stored_vec.shape != query_vec.shape:
            continue
        stored_norm = np.linalg.norm(stored_vec)
        if stored_norm == 0:
            continue
        sim = float(np.dot(query_vec, stored_vec) / (query_norm * stored_norm))
        if sim >= threshold:
            results.append({
                "content": row.content_chunk,
                "note_id": row.note_id,
                "chunk_index": row.chunk_index,
                "similarity": sim,
            })

    # Sort by similarity descending, return top-k
    results.sort(key=lambda x: x["similarity"], reverse=True)
    return results[:top_k]
