"""Domain layer for qbrecon application.

Services are imported from their modules (qbrecon.domain.account, ...); the
package itself stays empty because the database layer imports
qbrecon.domain.entities while loading.
"""
