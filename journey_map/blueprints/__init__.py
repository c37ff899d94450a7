"""
JTBD Journey Map
Blueprint registry.

    import_bp     /api/v1/import       CSV template + dry-run validation
    workspace_bp  /api/v1/workspaces   live diagram sessions
    journey_bp    /api/v1/journeys     stored journeys
    health_bp     /api/v1/health       probes
"""
