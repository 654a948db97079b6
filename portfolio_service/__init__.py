"""Investment Portfolio gateway for the FinClub lending platform."""
