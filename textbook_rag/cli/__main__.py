# =============================================================================
# textbook_rag/cli/__main__.py - Package Entry Point
# =============================================================================
#
# This file enables running the CLI package itself as a module:
#     python -m textbook_rag.cli ingest books/biology-2e.pdf --book biology-2e ...
#
# When Python encounters `python -m textbook_rag.cli`, it looks for
# __main__.py inside the package and executes it. This delegates to the
# index CLI (ingest.py), which carries every subcommand.
# =============================================================================

"""Allow ``python -m textbook_rag.cli`` execution."""

from textbook_rag.cli.ingest import main

main()
