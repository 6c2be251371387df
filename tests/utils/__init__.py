"""
Test utilities package for Schedule Bot tests.

## Available Modules

### test_helpers.py
- `create_test_config()`: Build a validated configuration with channel defaults
- `create_mock_gateway()`: Messaging gateway mock whose messages persist
- `create_mock_message()`: Mock Discord message with a given ID
- `make_entry()`: Schedule entry with sensible defaults
"""
