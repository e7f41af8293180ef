from chunkflow.main import run

# Run the chunking and stitching API
if __name__ == "__main__":
    run()
