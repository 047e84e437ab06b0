"""Optional local embeddings for similarity search over fact entries."""

from __future__ import annotations

import hashlib
import math
from typing import Iterable, List, Sequence

from .logging import get_logger
from .models import FactEntry
from .stores.text import stem_tokens

DEFAULT_DIMENSION = 384
DEFAULT_BATCH_SIZE = 8
MAX_EMBED_CHARS = 2000


class HashingEmbedder:
    """Signed feature hashing of stemmed tokens into a fixed-size unit vector."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    def embed(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for token in sorted(stem_tokens(text)):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            value = int.from_bytes(digest, "big")
            index = value % self.dimension
            sign = 1.0 if (value >> 63) & 1 else -1.0
            vector[index] += sign
        norm = math.sqrt(sum(component * component for component in vector))
        if not norm:
            return vector
        return [component / norm for component in vector]

    def embed_many(self, texts: Iterable[str]) -> List[List[float]]:
        return [self.embed(text) for text in texts]


def embedding_text(entry: FactEntry) -> str:
    return f"{entry.title}\n{entry.content}"[:MAX_EMBED_CHARS]


def embed_entries(
    entries: Sequence[FactEntry],
    embedder: HashingEmbedder,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Fill in missing embeddings batch by batch; returns how many were computed."""
    logger = get_logger("embeddings")
    pending = [entry for entry in entries if entry.embedding is None and (entry.title or entry.content)]
    size = max(1, batch_size)
    for start in range(0, len(pending), size):
        batch = pending[start : start + size]
        vectors = embedder.embed_many(embedding_text(entry) for entry in batch)
        for entry, vector in zip(batch, vectors):
            entry.embedding = vector
    logger.debug("Embedded %s of %s entries", len(pending), len(entries))
    return len(pending)


__all__ = ["DEFAULT_DIMENSION", "HashingEmbedder", "embed_entries", "embedding_text"]
