"""mcpd-manager subcommands."""
