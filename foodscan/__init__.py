"""Food-word classification service and scanning pipeline."""
