"""SQLAlchemy persistence for identity management."""
