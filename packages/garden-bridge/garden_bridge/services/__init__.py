"""Service layer — backends for capabilities whose data lives outside the bridge."""
