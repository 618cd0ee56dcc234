"""
tasklist — multi-tenant task-list API.

Entry point: tasklist.app.create_app(config_name).
"""
