"""Domain layer for ledgerkeep.

Services live in their own modules; import them from there so the database
layer can depend on ``ledgerkeep.domain.entities`` without a cycle.
"""
