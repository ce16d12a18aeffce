"""Geo Attendance package.

Feature modules (geo, sessions, attendance, classes) each keep a model,
a repository protocol with a document-store implementation, a service layer
and a thin Flask controller. The document store and class directory are
injected through :mod:`.container`.
"""
