"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
These vectors are stored in ChromaDB and used for similarity search (RAG).

Two implementations of IEmbeddingProvider:
    1. OpenAIEmbeddingProvider    - text-embedding-3-small (1536 dims).
       Default; requires an API key and incurs cost per token.
    2. SentenceTransformerEmbeddingProvider - all-MiniLM-L6-v2 (384 dims).
       Free and local, but pulls in PyTorch.

Note: the SentenceTransformer provider is imported directly where needed;
its module only touches ``sentence_transformers`` when the model is first
loaded.
"""

from textbook_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
