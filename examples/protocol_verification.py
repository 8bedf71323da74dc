"""Protocol Verification -- Multiparty Session Types.

Demonstrates well-formedness checking and per-role projection.
"""

from besedarium.mpst import (
    NonDisjointParError,
    SessionTypeChecker,
    choice,
    compose,
    end,
    interact,
    parallel,
    project_all,
)

# =============================================================
# Client-server handshake
# =============================================================
print("=== Client-Server Handshake ===")

handshake = interact(
    "hello", "client", "Message",
    interact("welcome", "server", "Response", end("done")),
)
print(f"Protocol: {handshake}")

checker = SessionTypeChecker()
result = checker.check_well_formed(handshake)
print(f"Well-formed: {result.is_well_formed}")

for role, local_type in project_all(handshake).items():
    print(f"  {role}: {local_type}")

# =============================================================
# Publish/subscribe with concurrent delivery
# =============================================================
print("\n=== Publish/Subscribe ===")

delivery = parallel(
    "deliver",
    interact("notify", "broker", "Notify", end("notified")),
    interact("ack", "worker", "Response", end("acked")),
)
pubsub = choice(
    "mode",
    interact("publish", "client", "Publish", delivery),
    interact("subscribe", "client", "Subscribe", end("subscribed")),
)

result = checker.check_well_formed(pubsub)
print(f"Well-formed: {result.is_well_formed}")
print(f"Parallel witnesses: {result.par_witnesses}")

for role, local_type in checker.project_all(pubsub).items():
    print(f"  {role}: {local_type}")

# =============================================================
# Rejected protocols
# =============================================================
print("\n=== Rejected Protocols ===")

duplicate = interact("step", "client", "Message", end("step"))
result = checker.check_well_formed(duplicate)
for error in result.errors:
    print(f"  Error: {error}")

try:
    compose(delivery, interact("again", "client", "Message", end("fin")))
except NonDisjointParError as e:
    print(f"  Error: {e}")

print("\nProtocol verification complete.")
