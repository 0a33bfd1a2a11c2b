"""ScenarioKit: scenario graph editor and ingestion client for the game admin backend."""

__version__ = "0.3.0"
