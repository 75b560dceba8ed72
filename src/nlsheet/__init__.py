"""nlsheet: edit spreadsheet grids with short plain-language instructions."""

__version__ = "0.3.0"
