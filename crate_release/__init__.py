"""Release automation for Cargo workspaces."""
