"""Allow running the package as a module: python -m discord_exporter."""

from discord_exporter.main import cli

if __name__ == "__main__":
    cli()
