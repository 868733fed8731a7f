"""
StockPulse Services

Each service has a defined input/output contract.
"""
