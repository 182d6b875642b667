"""
Marketplace Backend — Services Package
=======================================

Business logic, one module per area. Services take an AsyncSession and the
CurrentUser, raise MarketplaceError subclasses, and flush rather than commit;
`get_db_session` commits once the route returns. Bid acceptance and bulk
role-permission replacement are the exceptions and commit themselves.

Service Inventory:
    - auth_service.py:          login
    - project_service.py:       project CRUD
    - application_service.py:   applications, hiring, counters
    - bid_service.py:           bids and transactional acceptance
    - taxonomy_service.py:      categories, tags, skills (soft-deletable catalogs)
    - rbac_service.py:          roles, permissions, user ↔ role
    - activity_service.py:      favorites, reports
    - notification_service.py:  persisted notifications
    - notification_hub.py:      websocket push registry
    - payment_service.py:       escrow orders, history, webhook handling
    - razorpay_client.py:       gateway HTTP client (retry + circuit breaker)
"""
