"""
Marketplace Backend — API Routes Package
=========================================

Routes stay thin: parse the request, apply the auth gate, call one service
method, shape the response. Business rules live in `marketplace.services`.

Route Inventory (all under settings.api_prefix unless noted):
    - auth.py:           /auth/login, /auth/me
    - projects.py:       /projects
    - applications.py:   /applications
    - bids.py:           /project-bids
    - submissions.py:    /projects/{id}/submit, /submissions
    - taxonomy.py:       /category, /tags, /skills
    - rbac.py:           /role, /permission
    - activity.py:       /favorites, /saved-projects, /report
    - payments.py:       /payments, /webhook/razorpay
    - notifications.py:  /notifications, WS /ws/notifications (no prefix)
    - health.py:         GET /health (no prefix)
"""
