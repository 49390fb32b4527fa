"""Points Award Service: daily ad rewards and game points for verified users."""
