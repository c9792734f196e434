"""API router subpackage of the ingestion gate.

Submodules:
    - validate: Stand-alone source validation and source info endpoints.
    - ingestion: New layer, layer update and job retry endpoints.
    - schemas: Request and response bodies.
    - dependencies: Component composition and FastAPI dependencies.
"""
