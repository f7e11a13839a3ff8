"""PromptCanvas — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic request models, and
the gallery presentation helpers.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request validation.
errors
    ``APIError`` and the JSON error handlers.
gallery_store
    Gallery filtering, mock-record fallbacks, and response shaping.
"""
