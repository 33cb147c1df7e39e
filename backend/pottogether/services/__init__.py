# Services package init
"""
PotTogether Backend: Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Each service method receives the AsyncSession it works in, raises a
       PotTogetherError subclass for every expected failure and returns a
       Pydantic response schema.

Service Inventory:
    - RoomService: room creation, join / leave, member count reconciliation
    - RecordService: record start, one-time completion, listings
    - OverviewService: user overview, user profile, room overview
    - IngredientService: ingredient catalog
    - ObjectStore: uploaded image storage, returns public URLs
    - calendar: day / week / month windows and per-day bucketing

Import services from their modules (pottogether.services.room_service, ...);
this package re-exports nothing.
"""
