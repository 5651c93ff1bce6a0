"""
Server entry point for MFDS Regulatory Monitor
"""

def main():
    """Main entry point for the server"""
    from .api import run_api_server
    return run_api_server()

if __name__ == "__main__":
    main()
