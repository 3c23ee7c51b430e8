import base64, secrets, socket, threading
from datetime import datetime
from typing import Optional

def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"))

def short_token(nbytes: int = 4) -> str:
    return secrets.token_hex(nbytes)

def now_created() -> str:
    return datetime.now().isoformat(timespec="seconds")

def now_log_stamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

def now_archive_stamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")

# Newline-terminated UTF-8 framing
class LineChannel:
    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._rfile = sock.makefile("r", encoding="utf-8", errors="replace", newline="\n")
        self._wlock = threading.Lock()
        self.closed = False

    def send_line(self, text: str):
        data = (text + "\n").encode("utf-8")
        with self._wlock:
            self.sock.sendall(data)

    def recv_line(self) -> Optional[str]:
        """Next line without its terminator, or None at end of stream."""
        line = self._rfile.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def shutdown(self):
        # Wakes a reader blocked in recv_line on another thread.
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.shutdown()
        try:
            self._rfile.close(); self.sock.close()
        except OSError:
            pass
