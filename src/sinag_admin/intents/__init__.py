"""Pure construction of protocol calls for admin actions."""
