"""Sample shop package for scanner tests."""
