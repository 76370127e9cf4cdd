# Schemas package init
"""
Pydantic DTOs grouped by resource: account, shop, feed, chat, common.
Schemas are separate from the SQLAlchemy models so the API contract can
change independently of the table layout.
"""
