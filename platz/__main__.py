"""
CLI entry point, when used as a module: `python -m platz`.

Useful for debugging in the IDEs (use the start-mode "Module", module "platz").
"""
from platz import cli

if __name__ == '__main__':
    cli.main()
