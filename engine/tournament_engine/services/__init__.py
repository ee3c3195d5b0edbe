"""Tournament services: rankings, standings, rendering and live views.

Import from the submodules directly, e.g.
    from tournament_engine.services.tournament import TournamentService
"""
