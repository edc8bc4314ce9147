"""External image generation/edit service boundary."""
