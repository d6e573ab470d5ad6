"""HTTP interface for the UD-CO2S bridge."""
