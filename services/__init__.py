"""Service modules for the dump anonymizer."""

__all__ = [
    "dump_anonymizer",
]
