"""
Property-appraiser scraping engine.

This package resolves a county jurisdiction to a site-specific strategy and
drives it through one shared browser lifecycle, producing either a validated
owner/mailing-address record or a classified failure. A fuzzy-match harness
certifies that strategies still return the expected data.
"""
