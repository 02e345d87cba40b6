"""Command-line interface: the words and api command groups."""