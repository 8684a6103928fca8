# Routes package init
"""
Tripmark Backend — API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - collections.py: /api/users/me/bookmark-collections[...]
                      /api/bookmark-collections/{id}[/bookmarks]
                      /api/users/{owner_id}/bookmark-collections
    - friends.py:     /api/users/me/friend-invitations[...]
                      /api/users/me/friends[...]
    - health.py:      GET /health

Design Principle:
    Routes are THIN. They resolve the caller (X-User-ID), parse the
    request, call one service method and set headers. Business rules and
    transactions live in the services.
"""
