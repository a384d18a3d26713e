"""Chart build, test and deployment workflows used by the CLI."""
