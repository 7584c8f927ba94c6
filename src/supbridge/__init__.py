"""supbridge: bridge Sup chat DMs and mentions to an agent host."""
