"""Unit tests for the textbook index CLI: argument parsing, manifests and handlers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from textbook_rag.cli.ingest import (
    _build_embedding_provider,
    _build_filter,
    _build_parser,
    _handle_delete,
    _handle_ingest,
    _handle_query,
    _handle_reset,
    _handle_stats,
    _load_documents,
    main,
)
from textbook_rag.config.settings import Settings
from textbook_rag.models.rag import IndexStats, OrchestrationResult, QueryMatch, SystemStats


def _parse(*argv: str):
    return _build_parser().parse_args(list(argv))


# ======================================================================
# Argument parsing
# ======================================================================


class TestParser:
    def test_ingest_single_file(self) -> None:
        args = _parse("ingest", "bio.pdf", "--book", "biology-2e", "--title", "Biology 2e", "--fix-spacing")

        assert args.command == "ingest"
        assert args.file == "bio.pdf"
        assert args.fix_spacing is True
        assert args.manifest is None

    def test_query_options(self) -> None:
        args = _parse("query", "What is osmosis?", "--top-k", "3", "--content-type", "definition")

        assert args.text == "What is osmosis?"
        assert args.top_k == 3
        assert args.content_type == "definition"

    def test_invalid_content_type_rejected(self) -> None:
        with pytest.raises(SystemExit):
            _parse("query", "q", "--content-type", "diagram")

    def test_delete_requires_book(self) -> None:
        with pytest.raises(SystemExit):
            _parse("delete")

    def test_global_options(self) -> None:
        args = _parse("--config", "other.yaml", "--json-logs", "stats")

        assert args.config == "other.yaml"
        assert args.json_logs is True
        assert args.command == "stats"

    def test_no_command_exits(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1


# ======================================================================
# Document loading
# ======================================================================


class TestLoadDocuments:
    def test_single_file(self) -> None:
        args = _parse("ingest", "bio.txt", "--book", "bio", "--title", "Biology", "--subject", "biology")

        documents = _load_documents(args)

        assert len(documents) == 1
        assert documents[0].handle == "bio.txt"
        assert documents[0].metadata.subject == "biology"

    def test_single_file_needs_book_and_title(self) -> None:
        with pytest.raises(ValueError, match="--book and --title"):
            _load_documents(_parse("ingest", "bio.txt", "--book", "bio"))

    def test_nothing_to_ingest(self) -> None:
        with pytest.raises(ValueError, match="--manifest"):
            _load_documents(_parse("ingest"))

    def test_manifest_paths_relative_to_manifest(self, tmp_path) -> None:
        manifest = tmp_path / "books.yaml"
        manifest.write_text(
            "- book: biology-2e\n"
            "  title: Biology 2e\n"
            "  subject: biology\n"
            "  path: pdfs/biology.pdf\n"
            "- book: chem\n"
            "  title: Chemistry\n"
            "  path: /abs/chem.txt\n",
            encoding="utf-8",
        )

        documents = _load_documents(_parse("ingest", "--manifest", str(manifest)))

        assert [d.metadata.book for d in documents] == ["biology-2e", "chem"]
        assert documents[0].handle == str(tmp_path / "pdfs" / "biology.pdf")
        assert documents[1].handle == "/abs/chem.txt"
        assert documents[1].metadata.subject == ""

    def test_manifest_entry_missing_fields(self, tmp_path) -> None:
        manifest = tmp_path / "books.yaml"
        manifest.write_text("- book: bio\n  path: bio.txt\n", encoding="utf-8")

        with pytest.raises(ValueError, match="entry 0 is missing title"):
            _load_documents(_parse("ingest", "--manifest", str(manifest)))

    def test_manifest_must_be_list(self, tmp_path) -> None:
        manifest = tmp_path / "books.yaml"
        manifest.write_text("book: bio\n", encoding="utf-8")

        with pytest.raises(ValueError, match="YAML list"):
            _load_documents(_parse("ingest", "--manifest", str(manifest)))


class TestBuildFilter:
    def test_no_filters(self) -> None:
        assert _build_filter(_parse("query", "q")) is None

    def test_combined_filters(self) -> None:
        args = _parse("query", "q", "--book", "bio", "--chapter", "Cell Transport")

        assert _build_filter(args) == {"book": "bio", "chapter": "Cell Transport"}


# ======================================================================
# Provider selection
# ======================================================================


class TestBuildEmbeddingProvider:
    def test_openai_when_key_present(self) -> None:
        settings = Settings(embedding_provider="openai", openai_api_key="sk-test")

        with patch("textbook_rag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"):
            provider = _build_embedding_provider(settings)

        assert provider.get_provider_name() == "openai_embedding"

    def test_local_fallback_without_key(self) -> None:
        settings = Settings(embedding_provider="openai", openai_api_key="")

        with patch(
            "textbook_rag.providers.embedding.sentence_transformer_embedding_provider."
            "SentenceTransformerEmbeddingProvider.is_available",
            return_value=True,
        ):
            provider = _build_embedding_provider(settings)

        assert provider.get_provider_name().startswith("sentence_transformer_")

    def test_none_when_nothing_usable(self) -> None:
        settings = Settings(embedding_provider="sentence_transformer", openai_api_key="")

        with patch(
            "textbook_rag.providers.embedding.sentence_transformer_embedding_provider."
            "SentenceTransformerEmbeddingProvider.is_available",
            return_value=False,
        ):
            assert _build_embedding_provider(settings) is None


# ======================================================================
# Subcommand handlers
# ======================================================================


def _coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.process = AsyncMock(
        return_value=OrchestrationResult(processed_ids=["bio"], total_chunks=5, total_embeddings=5, indexed_count=5)
    )
    coordinator.query = AsyncMock(
        return_value=[
            QueryMatch(
                id="bio_0_abcd1234",
                score=0.91,
                text="Osmosis is   the movement of water.",
                metadata={"title": "Biology", "chapter": "Cell Transport"},
            )
        ]
    )
    coordinator.get_system_stats = AsyncMock(
        return_value=SystemStats(
            index=IndexStats(total_vectors=5, dimension=64, books=["bio"], vectors_by_book={"bio": 5}),
            embedding_provider="mock_embedding",
            embedding_dimension=64,
            vector_index_provider="mock_index",
        )
    )
    coordinator.delete_book = AsyncMock(return_value=5)
    coordinator.reset = AsyncMock()
    return coordinator


class TestHandlers:
    @pytest.mark.asyncio
    async def test_ingest(self, tmp_path, capsys) -> None:
        coordinator = _coordinator()
        args = _parse("ingest", str(tmp_path / "bio.txt"), "--book", "bio", "--title", "Biology")

        exit_code = await _handle_ingest(args, coordinator)

        assert exit_code == 0
        documents = coordinator.process.await_args.args[0]
        assert documents[0].metadata.book == "bio"
        assert "Books processed:  1" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_ingest_bad_arguments(self, capsys) -> None:
        coordinator = _coordinator()

        exit_code = await _handle_ingest(_parse("ingest"), coordinator)

        assert exit_code == 2
        coordinator.process.assert_not_called()
        assert "Error:" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_ingest_all_failed(self) -> None:
        coordinator = _coordinator()
        coordinator.process.return_value = OrchestrationResult(errors=["Biology: unreadable"])
        args = _parse("ingest", "bio.txt", "--book", "bio", "--title", "Biology")

        assert await _handle_ingest(args, coordinator) == 1

    @pytest.mark.asyncio
    async def test_query(self, capsys) -> None:
        coordinator = _coordinator()

        exit_code = await _handle_query(_parse("query", "osmosis", "--book", "bio"), coordinator)

        out = capsys.readouterr().out
        assert exit_code == 0
        assert coordinator.query.await_args.kwargs["filter"] == {"book": "bio"}
        assert "Biology / Cell Transport" in out
        assert "Osmosis is the movement of water." in out

    @pytest.mark.asyncio
    async def test_stats(self, capsys) -> None:
        exit_code = await _handle_stats(_coordinator())

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Total vectors:    5" in out
        assert "mock_embedding (64)" in out

    @pytest.mark.asyncio
    async def test_delete_with_yes(self, capsys) -> None:
        coordinator = _coordinator()

        await _handle_delete(_parse("delete", "--book", "bio", "--yes"), coordinator)

        coordinator.delete_book.assert_awaited_once_with("bio")
        assert "Deleted 5 chunks" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_reset_aborted(self, monkeypatch) -> None:
        coordinator = _coordinator()
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        exit_code = await _handle_reset(_parse("reset"), coordinator)

        assert exit_code == 0
        coordinator.reset.assert_not_called()
