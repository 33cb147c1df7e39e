# Routes package init
"""
PotTogether Backend: API Routes Package
========================================

Route Inventory:
    - rooms.py:        /api/rooms ...           (create, list, overview, join, leave)
    - records.py:      /api/records ...         (start, finish, list, detail)
    - users.py:        /api/users/me/...        (profile, overview)
    - ingredients.py:  /api/ingredients         (catalog list, admin add)
    - files.py:        /files/{key}             (stored images)
    - health.py:       /health                  (service health check)

Routes stay thin: resolve identity, open the request session, call one
service method and wrap its result in the Envelope. Errors are raised, not
returned; main.py turns them into envelope responses.
"""
