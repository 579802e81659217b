# =============================================================================
# textbook_rag/cli/ingest.py - CLI for the Textbook Vector Index
# =============================================================================
#
# Standalone CLI for building and inspecting the textbook RAG vector index.
# The index is a ChromaDB collection of structure-aware chunks cut from
# textbooks (PDF or plain text); each chunk carries its book, chapter,
# section, content type and keywords as metadata.
#
# Supported subcommands:
#
#   ingest - Ingest one textbook file, or every entry of a YAML manifest
#   query  - Embed a question and print the closest chunks
#   stats  - Display index statistics (vectors per book, providers)
#   delete - Remove every chunk of one book
#   reset  - Drop the whole collection
#
# The ingestion pipeline for each document (see pipeline/coordinator.py):
#   1. Extract text (PyMuPDF for .pdf, UTF-8 read for .txt/.md)
#   2. Detect chapters and sections, chunk along those boundaries
#   3. Generate vector embeddings (OpenAI or local sentence-transformers)
#   4. Upsert chunks + embeddings + metadata into ChromaDB
#
# Provider Selection:
#   - Embedding: EMBEDDING_PROVIDER=openai (needs OPENAI_API_KEY) or
#     sentence_transformer; OpenAI without a key falls back to the local model
#   - Vector Index: ChromaDB (always)
#
# Usage examples:
#   python -m textbook_rag.cli ingest books/biology-2e.pdf \
#       --book biology-2e --title "Biology 2e" --subject biology
#   python -m textbook_rag.cli ingest --manifest books.yaml
#   python -m textbook_rag.cli query "What drives osmosis?" --book biology-2e
#   python -m textbook_rag.cli stats
#   python -m textbook_rag.cli delete --book biology-2e --yes
# =============================================================================

"""Standalone CLI for building the textbook RAG vector index.

Usage::

    python -m textbook_rag.cli ingest books/biology-2e.pdf \\
        --book biology-2e --title "Biology 2e" --subject biology

    python -m textbook_rag.cli ingest --manifest books.yaml

    python -m textbook_rag.cli query "What drives osmosis?" --top-k 5

    python -m textbook_rag.cli stats

A manifest is a YAML list of ``{book, title, subject, path}`` entries.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import yaml

from textbook_rag.config.loader import load_config, resolve_settings
from textbook_rag.config.settings import Settings
from textbook_rag.models.pipeline import ProgressEvent
from textbook_rag.models.rag import BookMetadata, SourceDocument
from textbook_rag.utils.errors import TextbookRAGError
from textbook_rag.utils.logging import configure_logging


def _build_embedding_provider(app_settings: Settings):  # noqa: ANN202
    """Select the embedding provider named by ``EMBEDDING_PROVIDER``.

    ``openai`` is used when an API key is configured; otherwise the local
    sentence-transformers model is the fallback.  The vector index must be
    built and queried with the same provider, since dimensions differ.

    Imports are deferred inside the function to avoid loading heavy
    dependencies (openai SDK, PyTorch) unless actually needed.

    Returns
    -------
    IEmbeddingProvider or None
        The selected provider, or ``None`` if none is usable.
    """
    if app_settings.embedding_provider == "openai" and app_settings.openai_api_key:
        from textbook_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    from textbook_rag.providers.embedding.sentence_transformer_embedding_provider import (
        SentenceTransformerEmbeddingProvider,
    )

    st_provider = SentenceTransformerEmbeddingProvider(
        model_name=app_settings.sentence_transformer_model
    )
    if st_provider.is_available():
        return st_provider

    return None


def _build_vector_index(app_settings: Settings, config: dict, dimension: int):  # noqa: ANN202
    """Open the ChromaDB collection configured in settings."""
    from textbook_rag.providers.vector_store.chromadb_provider import ChromaDBVectorIndex

    return ChromaDBVectorIndex(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        dimension=dimension,
        max_text_chars=config.get("vector_index", {}).get("max_metadata_text_chars", 40_000),
    )


def _build_coordinator(args: argparse.Namespace, app_settings: Settings, config: dict):  # noqa: ANN202
    """Construct the pipeline coordinator with all providers.

    Assembles the complete ingestion pipeline by wiring together:
      - CompositeTextExtractor: PDF (PyMuPDF) and plain-text extraction
      - ContentChunker: structure detection + boundary-preserving chunking
      - EmbeddingProvider: converts chunks to vector embeddings
      - ChromaDBVectorIndex: stores embeddings + metadata

    Returns
    -------
    tuple[PipelineCoordinator, str] or tuple[None, str]
        The coordinator and a status message, or ``None`` with an error
        message if no embedding provider is usable.
    """
    embedding_provider = _build_embedding_provider(app_settings)
    if embedding_provider is None:
        return None, (
            "No embedding provider available.\n"
            "Set one of:\n"
            "  OPENAI_API_KEY - for OpenAI text-embedding-3-small\n"
            "  or install sentence-transformers for the local model\n"
        )

    from textbook_rag.pipeline.coordinator import PipelineCoordinator
    from textbook_rag.providers.extraction import (
        CompositeTextExtractor,
        PDFTextExtractor,
        PlainTextExtractor,
    )
    from textbook_rag.services.ingestion.chunker import ContentChunker
    from textbook_rag.services.ingestion.heading_rules import HeadingClassifier

    vector_index = _build_vector_index(app_settings, config, embedding_provider.get_dimension())
    extractor = CompositeTextExtractor(
        [
            PDFTextExtractor(fix_spacing=getattr(args, "fix_spacing", False)),
            PlainTextExtractor(),
        ]
    )
    classifier = HeadingClassifier(
        max_line_length=config.get("structure", {}).get("max_heading_line_chars", 150)
    )
    chunker = ContentChunker.from_settings(app_settings, classifier=classifier)

    coordinator = PipelineCoordinator(
        extractor=extractor,
        embedding_provider=embedding_provider,
        vector_index=vector_index,
        chunker=chunker,
        max_concurrent_processing=app_settings.max_concurrent_processing,
        upsert_batch_size=app_settings.upsert_batch_size,
    )
    provider_name = embedding_provider.get_provider_name()
    return coordinator, f"Embedding: {provider_name} | Index: chromadb"


def _load_documents(args: argparse.Namespace) -> list[SourceDocument]:
    """Turn ``ingest`` arguments into source documents.

    Raises
    ------
    ValueError
        If neither a file nor a manifest is given, or a manifest entry is
        incomplete.
    """
    if args.manifest:
        manifest_path = Path(args.manifest)
        with open(manifest_path, encoding="utf-8") as f:
            entries = yaml.safe_load(f) or []
        if not isinstance(entries, list):
            raise ValueError(f"Manifest {manifest_path} must be a YAML list")

        documents: list[SourceDocument] = []
        for index, entry in enumerate(entries):
            missing = [key for key in ("book", "title", "path") if not entry.get(key)]
            if missing:
                raise ValueError(f"Manifest entry {index} is missing {', '.join(missing)}")
            path = Path(entry["path"])
            if not path.is_absolute():
                path = manifest_path.parent / path
            documents.append(
                SourceDocument(
                    metadata=BookMetadata(
                        book=entry["book"],
                        title=entry["title"],
                        subject=entry.get("subject", ""),
                    ),
                    handle=str(path),
                )
            )
        return documents

    if not args.file:
        raise ValueError("Give a file to ingest or --manifest")
    if not args.book or not args.title:
        raise ValueError("--book and --title are required when ingesting a single file")
    return [
        SourceDocument(
            metadata=BookMetadata(book=args.book, title=args.title, subject=args.subject or ""),
            handle=args.file,
        )
    ]


def _print_progress(event: ProgressEvent) -> None:
    print(f"  [{event.stage.value:<11}] {event.percentage:5.1f}%  {event.message}")


def _build_filter(args: argparse.Namespace) -> dict[str, str] | None:
    query_filter = {
        key: value
        for key, value in (
            ("book", args.book),
            ("chapter", args.chapter),
            ("content_type", args.content_type),
        )
        if value
    }
    return query_filter or None


def _confirm(prompt: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    answer = input(f"  {prompt} [y/N] ").strip().lower()
    return answer in ("y", "yes")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, coordinator) -> int:  # noqa: ANN001
    """Ingest one file or a manifest of textbooks."""
    try:
        documents = _load_documents(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(f"Ingesting {len(documents)} textbook(s)")
    result = await coordinator.process(documents, on_progress=_print_progress)

    print("\nIngestion complete:")
    print(f"  Books processed:  {len(result.processed_ids)}")
    print(f"  Chunks created:   {result.total_chunks}")
    print(f"  Vectors indexed:  {result.indexed_count}/{result.total_embeddings}")
    print(f"  Avg chunk size:   {result.stats.avg_chunk_size:.0f} chars")
    print(f"  Time:             {result.processing_time_ms / 1000:.2f}s")
    for outcome in result.outcomes:
        print(
            f"    {outcome.book:<30} {outcome.chunk_count:>6} chunks  "
            f"{outcome.strategy_used:<16} quality={outcome.structure_quality:.2f}"
        )
    if result.errors:
        print("\n  Errors:")
        for error in result.errors:
            print(f"    - {error}")
    return 1 if result.errors and not result.processed_ids else 0


async def _handle_query(args: argparse.Namespace, coordinator) -> int:  # noqa: ANN001
    """Embed a question and print the closest chunks."""
    matches = await coordinator.query(args.text, top_k=args.top_k, filter=_build_filter(args))
    if not matches:
        print("No matches.")
        return 0

    for rank, match in enumerate(matches, start=1):
        meta = match.metadata
        location = " / ".join(
            str(part) for part in (meta.get("title"), meta.get("chapter"), meta.get("section")) if part
        )
        print(f"{rank:>2}. {match.score:.3f}  {location}  ({match.id})")
        snippet = " ".join(match.text.split())[:200]
        print(f"    {snippet}")
    return 0


async def _handle_stats(coordinator) -> int:  # noqa: ANN001
    """Display index statistics."""
    stats = await coordinator.get_system_stats()

    print("Index Statistics")
    print("=" * 40)
    print(f"  Total vectors:    {stats.index.total_vectors}")
    print(f"  Dimension:        {stats.index.dimension}")
    print(f"  Embedding:        {stats.embedding_provider} ({stats.embedding_dimension})")
    print(f"  Vector index:     {stats.vector_index_provider}")

    if stats.index.vectors_by_book:
        print("\n  Vectors by book:")
        for book in stats.index.books:
            print(f"    {book:<30} {stats.index.vectors_by_book[book]}")
    return 0


async def _handle_delete(args: argparse.Namespace, coordinator) -> int:  # noqa: ANN001
    """Delete every chunk of one book.

    This is a destructive operation.  Requires confirmation unless --yes
    is passed.
    """
    if not _confirm(f"Delete all chunks of '{args.book}'?", args.yes):
        print("  Aborted.")
        return 0
    deleted = await coordinator.delete_book(args.book)
    print(f"Deleted {deleted} chunks for '{args.book}'.")
    return 0


async def _handle_reset(args: argparse.Namespace, coordinator) -> int:  # noqa: ANN001
    """Drop and recreate the whole collection."""
    if not _confirm("Delete EVERY vector in the index?", args.yes):
        print("  Aborted.")
        return 0
    await coordinator.reset()
    print("Index reset.")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the textbook CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m textbook_rag.cli",
        description="Build and query the textbook RAG vector index.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="YAML defaults file (default: config/config.yaml)"
    )
    parser.add_argument(
        "--json-logs", action="store_true", dest="json_logs", help="Emit JSON log lines"
    )
    subparsers = parser.add_subparsers(dest="command", help="Index commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest textbook files")
    ingest_parser.add_argument("file", nargs="?", help="Path to a .pdf, .txt or .md file")
    ingest_parser.add_argument("--book", help="Stable book id, e.g. biology-2e")
    ingest_parser.add_argument("--title", help="Book title")
    ingest_parser.add_argument("--subject", default="", help="Subject area")
    ingest_parser.add_argument("--manifest", help="YAML list of {book, title, subject, path}")
    ingest_parser.add_argument(
        "--fix-spacing",
        action="store_true",
        dest="fix_spacing",
        help="Re-insert spaces dropped by the PDF text layer",
    )

    # -- query --
    query_parser = subparsers.add_parser("query", help="Search the index")
    query_parser.add_argument("text", help="Question or search text")
    query_parser.add_argument("--top-k", type=int, default=10, dest="top_k", help="Matches to return")
    query_parser.add_argument("--book", help="Restrict to one book id")
    query_parser.add_argument("--chapter", help="Restrict to one chapter title")
    query_parser.add_argument(
        "--content-type",
        dest="content_type",
        choices=["text", "definition", "example", "exercise", "formula"],
        help="Restrict to one content type",
    )

    # -- stats --
    subparsers.add_parser("stats", help="Show index statistics")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete every chunk of a book")
    delete_parser.add_argument("--book", required=True, help="Book id to delete")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    # -- reset --
    reset_parser = subparsers.add_parser("reset", help="Delete every vector in the index")
    reset_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, loads Settings from environment variables /
    ``.env`` plus the YAML defaults, builds the coordinator and dispatches
    to the matching handler.  Exits with the handler's status code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    config = load_config(args.config, settings=app_settings)
    app_settings = resolve_settings(config, app_settings)
    configure_logging(app_settings.log_level, json_output=args.json_logs)

    try:
        coordinator, status_msg = _build_coordinator(args, app_settings, config)
    except TextbookRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    if coordinator is None:
        print(f"Error: {status_msg}", file=sys.stderr)
        sys.exit(1)

    print(f"Providers: {status_msg}")
    print()

    try:
        if args.command == "ingest":
            exit_code = asyncio.run(_handle_ingest(args, coordinator))
        elif args.command == "query":
            exit_code = asyncio.run(_handle_query(args, coordinator))
        elif args.command == "stats":
            exit_code = asyncio.run(_handle_stats(coordinator))
        elif args.command == "delete":
            exit_code = asyncio.run(_handle_delete(args, coordinator))
        elif args.command == "reset":
            exit_code = asyncio.run(_handle_reset(args, coordinator))
        else:
            parser.print_help()
            exit_code = 1
    except TextbookRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
