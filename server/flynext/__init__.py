"""FlyNext flight and hotel booking API."""
