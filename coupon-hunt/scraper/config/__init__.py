"""Static site configuration and environment tunables."""
