"""HTTP blueprints for the reservations backend."""
