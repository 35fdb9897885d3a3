"""Team number scanning with directory enrichment and preview overlays."""
