"""Personal notes REST API: registration, bearer-token auth, per-user note CRUD."""
