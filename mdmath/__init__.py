"""
mdmath - background equation renderer for terminal editors

Reads render requests from stdin, typesets LaTeX equations, rasterizes them to
PNG files sized to the host's character grid and answers with the file path.

Architecture:
- Typesetting Context: LaTeX -> SVG, preamble macros
- Rendering Context: caching, cell/pixel sizing, rasterization, output files
- Serving Context: wire protocol, request dispatch, process lifecycle
"""

__version__ = "0.1.0"
