# Routes package init
"""
Sleeping Backend: API Routes Package
=====================================

What:  HTTP and WebSocket handlers. Routes stay thin: they parse the
       request, resolve the caller, call one service and shape the response.

Route Inventory:
    - health.py:  GET /health
    - auth.py:    /auth/register, /auth/login
    - users.py:   /users/... (profile, progression, inventory, ledger, social graph)
    - posts.py:   /posts/... (feed, upload, likes, comments)
    - shop.py:    /shop, /shop/buy
    - events.py:  /events, /events/{tag}
    - chat.py:    WS /ws
"""
