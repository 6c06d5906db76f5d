"""SettleUp: expense splitting, balances and debt settlement."""
