"""`helperkit` boundaries, kept next to the code the import-boundary tests scan.

1) Nothing under `helperkit` imports `acceptance.*`.
2) The chain pointer has one owner, `ChainState`. Promises set it when they are
   constructed; the isolation frame clears it for a continuation and puts the
   outer value back on exit, including when the continuation raises.
3) Coroutine helpers run in a task whose context starts with no pointer, so
   helpers awaited inside them never append to the chain that is waiting on them.
4) Registries store; they never decide:
   - waiters are kept in order here and polled by the framework's `wait`
   - rejected chains go to `ChainState.on_error`; routing to a test runner is
     the framework's job
   - where injected helpers end up (namespaces, app attributes) is decided by
     the framework harness
"""
