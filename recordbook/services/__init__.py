# Services package init
"""
Recordbook Backend: Services Layer
===================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services are constructed once by the application factory with their
       collaborators and reached by routes through FastAPI dependencies.

Service Inventory:
    - RecordStore: validation and every statement against the records table
    - LoginService: demonstration account check
"""
