"""ShipLink dispatch engine: delivery requests, pricing, identifiers and quotes."""
