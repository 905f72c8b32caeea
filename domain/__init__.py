"""Describes the PLATE domain. Centres around the `RequestOrchestrator`.

Why is this hard?

- Every recipe costs money: it comes from a paid search API or an LLM.
  These tend to be served behind apis with their own limits.
- Users get a fixed number of requests a day, and two requests racing for the
  last slot must not both win.
- Classifying ingredients is fuzzy. The LLM helps when it is up and a rule
  table covers for it when it is not.

Should be able to fake all of the external services, so they are injected.
"""
