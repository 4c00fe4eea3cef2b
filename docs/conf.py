"""Sphinx build settings for the account service API reference."""

from __future__ import annotations

import sys
from pathlib import Path

# Make the ``identity`` package importable for autodoc without installing it.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

project = "Account Service"
author = "Platform Team"
release = "0.1.0"
copyright = f"2024, {author}"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx_autodoc_typehints",
]

# Database drivers are not needed to render docstrings.
autodoc_mock_imports = ["psycopg", "psycopg_pool"]
autodoc_member_order = "bysource"
always_document_param_types = True

napoleon_numpy_docstring = True
napoleon_google_docstring = False

master_doc = "index"
exclude_patterns = ["_build"]
