"""
Sentence-based text chunking for embeddings and speech synthesis.

Both consumers share one algorithm and differ only in chunk size and in
whether the tail of a sealed chunk is carried into the next one: embedding
chunks use no overlap, speech chunks carry the last few words forward.
"""
import re

SENTENCE_SPLIT = re.compile(r"[.!?]+")
SEPARATOR = ". "


def split_sentences(text):
    """Split on sentence-terminal punctuation, dropping empty fragments."""
    return [s.strip() for s in SENTENCE_SPLIT.split(text or "") if s.strip()]


def chunk_text(text, max_chunk_size=500, overlap_words=0):
    """
    Greedily pack whole sentences into chunks of at most max_chunk_size chars.

    A sentence longer than max_chunk_size becomes its own chunk. With
    overlap_words > 0 every chunk after the first starts with the last
    overlap_words words of the chunk before it.
    """
    chunks = []
    current = ""

    for sentence in split_sentences(text):
        if current and len(current) + len(SEPARATOR) + len(sentence) > max_chunk_size:
            chunks.append(current)
            if overlap_words > 0:
                tail = current.split()[-overlap_words:]
                current = " ".join(tail) + SEPARATOR + sentence
            else:
                current = sentence
        else:
            current = current + SEPARATOR + sentence if current else sentence

    if current:
        chunks.append(current)

    return chunks
