"""
Game rules for the realm.

Each module holds one feature's rule tables and a service class bound to an
AsyncSession. Services flush; whoever opened the session commits.
"""
