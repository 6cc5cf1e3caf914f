"""NuKoken: recipes and a sourdough blog, served with Starlette."""
