# Services package init
"""
Sleeping Backend: Services Layer
=================================

What:  Business logic between the routes (HTTP / WebSocket) and the database.
How:   Request-scoped services receive the request's AsyncSession and only
       flush; get_db_session() commits. LedgerService and ChatRelay own their
       transactions through unit_of_work().

Service Inventory:
    - AccountService:    registration, login, profile, XP and aura
    - LedgerService:     purchases, grants and the balance ledger
    - SocialService:     follow and block edges
    - FeedService:       posts, likes and comments
    - EventService:      hashtag events and their entries
    - MediaStorage:      upload interface (CloudinaryStorage, LocalMediaStorage)
    - ChatRelay:         realtime rooms on top of RoomRegistry
"""
