# =============================================================================
# textbook_rag/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# This package provides the command-line tool for operators who build and
# inspect the textbook vector index outside of any application server.
#
#   INDEX (ingest.py)
#      ingest / query / stats / delete / reset against the ChromaDB
#      collection configured in settings.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer) to minimize external
#     dependencies.
#   - Heavy imports (embedding providers, chromadb) are deferred inside
#     functions to keep startup time fast for simple commands.
#   - The CLI constructs its own service dependencies rather than relying
#     on a central DI container, because it runs as a one-shot script.
# =============================================================================

"""CLI tools for the textbook RAG pipeline.

- ``python -m textbook_rag.cli`` - ingest textbooks into, query, inspect and
  reset the vector index.
"""
