"""Hotels app package: hotels, room types, rooms and availability overrides."""
