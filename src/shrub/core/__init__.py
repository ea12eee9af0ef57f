"""Core library: storage, ID allocation and entity managers."""
