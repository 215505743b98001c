"""
Blog API Backend - Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS preflight] → [CORS headers] → [Request ID] → [Logging]
            → [Unhandled errors] → [Method filter] → Router → [TransactionLogRoute] → Route Handler

    1. CORSMiddleware answers browser preflight requests
    2. PermissiveCORSHeadersMiddleware stamps CORS headers on every response,
       including 404, 500 and 501 short-circuits
    3. Request ID is generated before anything logs
    4. Access logging sees the final status of every request
    5. Exceptions no handler answered become a JSON 500 here
    6. Unsupported methods stop here with 501, before routing
    7. Post routes record a transaction log entry per request
"""
