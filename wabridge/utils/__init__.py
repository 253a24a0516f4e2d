"""Utility functions for wabridge."""

from wabridge.utils.helpers import get_data_path, normalize_sender_id, parse_csv_values

__all__ = ["get_data_path", "normalize_sender_id", "parse_csv_values"]
