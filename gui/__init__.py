"""
Browser Search HUD GUI package.

Provides the PyQt6 search panel window for the browser search engine.
"""


def main():
    """Convenience entry point, delegates to gui.search_panel.main()."""
    from gui.search_panel import main as _main
    _main()


__all__ = ["main"]
