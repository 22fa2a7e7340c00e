"""Properties app package.

Listed properties and the rate plans that price and constrain every
bookable subject.
"""
