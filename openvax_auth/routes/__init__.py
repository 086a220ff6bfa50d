"""HTTP routes for the OpenVax account services."""
