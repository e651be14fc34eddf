"""relay.connections package

Clients for the external services the relay talks to.

Modules
-------
* slack_client – post, update and ephemeral messages via ``slack_sdk``.
* clay_client – submit enrichment jobs to Clay over HTTP."""
