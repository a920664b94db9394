"""Flask JSON API and SQLAlchemy record store for the loan tracker."""
