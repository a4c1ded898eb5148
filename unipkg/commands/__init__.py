"""Click subcommands for unipkg."""
