"""API layer: canonical read surface for presentation.

Key rules:

1. No SQLAlchemy imports - only DocumentStore implementations touch storage
2. Query/transform logic lives in aggregation/ and query/; this layer shapes
   their results for views
3. Return Pydantic models or composition wrappers only
"""
