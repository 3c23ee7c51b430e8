import logging
import socket
import threading

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024


class MediaRelay:
    """
    Unauthenticated raw-byte relay for the media stream.

    Every chunk read from one connection is written, unmodified, to every
    other connected socket. No framing, no shared state with the chat core.
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.clients = []
        self.lock = threading.Lock()

    def handle(self, conn: socket.socket, addr=None):
        with self.lock:
            self.clients.append(conn)
        try:
            while True:
                data = conn.recv(CHUNK_SIZE)
                if not data:
                    break
                self.broadcast(data, conn)
        except OSError as e:
            logger.info("Media client %s disconnected: %s", addr, e)
        finally:
            with self.lock:
                if conn in self.clients:
                    self.clients.remove(conn)
            try:
                conn.close()
            except OSError:
                pass

    def broadcast(self, data: bytes, sender: socket.socket):
        with self.lock:
            peers = [c for c in self.clients if c is not sender]
        for peer in peers:
            try:
                peer.sendall(data)
            except OSError as e:
                logger.warning("Failed to send media data: %s", e)

    def serve_forever(self):
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind((self.host, self.port))
        srv.listen(5)
        print(f"Media relay listening on {self.host}:{self.port}")
        while True:
            conn, addr = srv.accept()
            threading.Thread(target=self.handle, args=(conn, addr), daemon=True).start()
