"""Task graph and the standard build pipeline."""
