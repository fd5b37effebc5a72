"""SQLAlchemy persistence for the jelly core."""
