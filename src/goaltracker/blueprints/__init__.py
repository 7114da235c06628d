"""HTTP blueprints exposing the goal tracker JSON API."""
