"""View-once plugin: saves view-once media for trusted users."""
