"""Helpers shared by the markdown-based adapters."""
