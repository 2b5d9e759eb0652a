"""Routing — ordered route table with first-match-wins dispatch.

Routes are declared during setup and frozen before the first request;
dispatch only ever reads them.
"""
