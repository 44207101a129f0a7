from .email import extract_address, format_address

__all__ = ["extract_address", "format_address"]
