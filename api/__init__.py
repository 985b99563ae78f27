"""
API Package.

HTTP surface of the risk service.

Modules:
- main: FastAPI application factory and error envelope
- routers/: endpoint groups
- schemas: request and response models
"""
