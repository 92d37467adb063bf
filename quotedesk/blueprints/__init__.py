"""
JSON blueprints.

Each package exposes its Blueprint object; routes and request parsing live in routes.py.
Routes validate input into quotedesk.schemas structs, call quotedesk.services and commit.
"""
