"""HTTP clients for Storyblok and the AI providers."""
