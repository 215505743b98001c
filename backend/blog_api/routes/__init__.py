# Routes package init
"""
Blog API Backend - API Routes Package
======================================

Route Inventory:
    - posts.py:   GET/POST   /posts
                  GET/PUT/DELETE /posts/{post_id}
    - health.py:  GET /health

Routes handle HTTP concerns only; validation and storage live in services.
"""
