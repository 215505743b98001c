# Services package init
"""
Blog API Backend - Services Layer
==================================

What:  Logic sitting between routes (HTTP) and the database.

Service Inventory:
    - PostRepository: Parameterized CRUD statements, one pool checkout per call
    - PostService: Payload validation and dispatch to the repository
    - TransactionLog: Bounded, best-effort JSON-lines request log
"""
