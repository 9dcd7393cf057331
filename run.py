from flv_inspector.main import run

# Run the inspection service
if __name__ == "__main__":
    run()
