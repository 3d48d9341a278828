"""
Command-line interface modules.

Provides CLI entry points for:
- train_model: Train the price, fraud and recommendation models
- predict: Price estimates, fraud checks and recommendations
"""
