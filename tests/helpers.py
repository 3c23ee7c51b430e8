"""Socket-pair peers for driving RelayServer.handle without binding ports."""
import socket
import threading
import time

from relaychat.common.protocol import PROMPT_IDENTITY, PROMPT_SECRET
from relaychat.common.utils import LineChannel

TIMEOUT = 5


def wait_for(predicate, timeout=TIMEOUT, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def channel_pair():
    """(server-side socket, test-side LineChannel)"""
    ours, theirs = socket.socketpair()
    ours.settimeout(TIMEOUT)
    return theirs, LineChannel(ours)


class Peer:
    def __init__(self, server, addr="test"):
        conn, self.channel = channel_pair()
        self.thread = threading.Thread(target=server.handle, args=(conn, addr), daemon=True)
        self.thread.start()

    def read(self):
        return self.channel.recv_line()

    def read_n(self, n):
        return [self.read() for _ in range(n)]

    def send(self, text):
        self.channel.send_line(text)

    def login(self, identity, secret):
        assert self.read() == PROMPT_IDENTITY
        self.send(identity)
        assert self.read() == PROMPT_SECRET
        self.send(secret)
        return self.read()

    def close(self):
        self.channel.close()
        self.thread.join(TIMEOUT)
