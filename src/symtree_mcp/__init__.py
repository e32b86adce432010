"""symtree-mcp: file structure outlines with inherited members."""

__version__ = "0.1.0"
