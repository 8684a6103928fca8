# Services package init
"""
Tripmark Backend — Services Layer
===================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Each service is stateless and receives the AsyncSession it works in;
       mutations run inside `app.database.transaction()`.

Service Inventory:
    - guards:             pure ownership / visibility checks (no I/O)
    - LocationService:    insert-or-fetch of shared coordinates
    - FriendService:      invitation lifecycle and the friendship check
    - CollectionService:  collection CRUD and the bookmark sync engine
"""
