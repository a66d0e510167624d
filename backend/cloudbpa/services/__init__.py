"""Cloud BPA engine services."""
