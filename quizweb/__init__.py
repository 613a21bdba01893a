"""Quiz web application with a text-file question bank import."""
