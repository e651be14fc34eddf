"""relay.inputs package

Adapters that ingest events from external sources and translate them into
records the verbs can act on.

Modules
-------
* slack – Parse Slack Events API payloads and verify request signatures."""
