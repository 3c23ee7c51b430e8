#!/usr/bin/env python3
import os, socket, threading
from dotenv import load_dotenv
from relaychat.common.utils import LineChannel

load_dotenv()

SERVER_HOST = os.getenv("SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("SERVER_PORT", os.getenv("PORT", "8080")))

def print_incoming(channel: LineChannel, done: threading.Event):
    try:
        while True:
            line = channel.recv_line()
            if line is None:
                break
            print(line)
    except OSError:
        pass
    finally:
        print("Connection closed by server.")
        done.set()

def main():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.connect((SERVER_HOST, SERVER_PORT))
    channel = LineChannel(s)
    done = threading.Event()
    threading.Thread(target=print_incoming, args=(channel, done), daemon=True).start()

    # Prompts, auth and chat all arrive on the reader thread; stdin just feeds lines.
    try:
        while not done.is_set():
            try:
                text = input()
            except EOFError:
                break
            if text.strip().lower() == "exit":
                break
            channel.send_line(text)
    except (KeyboardInterrupt, OSError):
        pass
    finally:
        channel.close()

if __name__ == "__main__":
    main()
