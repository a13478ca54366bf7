"""
School Registry Backend: Services Layer
=========================================

Service Inventory:
    - ImageStorage:  image validation, naming, storage and lookup
    - SchoolService: create/list/get over the schools table

Both are constructed once per application by create_app() and reach route
handlers through FastAPI dependencies reading `app.state`.
"""
