"""
relaychat: a single-channel, credential-gated text relay.

One persistent admin and one rotating client credential gate a TCP line
protocol; accepted lines are appended to a live transcript and broadcast to
every other connected session.
"""
