"""HTTP trigger surface for collection runs."""
