"""SQL storage layer.

This package wraps database connections behind a transactional
prepare / batch / commit surface used by the loader.
"""
