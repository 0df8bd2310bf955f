"""Record stores for proposals, their children, history and profiles."""
