"""Poll / diff / persist pipeline."""
