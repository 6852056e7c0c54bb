"""Payment processor integration (Mercado Pago)."""
