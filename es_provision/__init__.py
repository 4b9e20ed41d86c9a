"""
es-provision: fetches, caches and stages Elasticsearch distributions into
instance directories.
"""

__version__ = "1.0.0"
