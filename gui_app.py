"""
Browser Search HUD - macOS GUI Application

A floating search panel that finds clips in the host video editor's browser
list through the macOS accessibility API.
"""
from gui import main

if __name__ == "__main__":
    main()
