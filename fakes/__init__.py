"""Hardware stand-ins for running the bridge and its tests without a sensor."""
