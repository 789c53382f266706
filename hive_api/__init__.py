"""
Hive API: the box allocation service

Single source of truth for hives, boxes and who sits where.
Responsibilities:
- Hive/Box CRUD and suggested box addresses
- Login: admin check, existing mapping lookup or new allocation
- Disconnect / release / admin delete
- Identity names, admins and settings
- Usage statistics
"""
