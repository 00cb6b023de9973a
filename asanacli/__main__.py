"""Main entry point when executing asanacli as a package.

This allows running the package using python -m asanacli.
"""

from asanacli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
