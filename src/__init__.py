"""Mediverse: AI nurse chat with specialty triage and doctor handoff.

Architecture Overview
=====================

Every incoming message belongs to a conversation that is in one of three
modes, and the mode decides how the message is handled:

1. **generic**: an AI nurse answers.  Each message is first checked by a
   cheap yes/no classifier model: if the user wants to see a doctor, a
   keyword-based specialty matcher picks a department, the triage is
   logged, and the first doctor of that specialty is offered.

2. **doctor_handoff_pending**: the user's reply accepts ("có", "ok", …)
   or declines ("không", "no", …) the offered doctor.  Anything else is
   answered as a generic message and the offer stays open.

3. **doctor_active**: the model answers in the persona of the assigned
   doctor.

The routing is a LangGraph StateGraph (``src/agent.py``).  Conversations,
doctors and triage records live in in-memory stores; the text-completion
service (Anthropic via LangChain) is injected, so tests run on stubs.

Package Structure
-----------------
- ``src/agent.py``: LangGraph routing graph for one chat turn
- ``src/models.py``: pydantic domain models and mode transitions
- ``src/prompts.py``: nurse / doctor / intent prompts and canned replies
- ``src/config.py``: Centralized configuration from environment variables
- ``src/errors.py``: error kinds reported to callers
- ``src/server.py``: FastAPI application
- ``src/main.py``: CLI chat interface
- ``src/services/``: completion clients, intent classifier, triage, stores,
  metrics and the conversation service
- ``src/api/``: FastAPI routes and Pydantic schemas
"""
