"""Recipe, blog and admin form logic with no web or database dependencies."""
