"""
Ingestion: PDF text extraction, chunking, and embedding into the vector store.

Every run is a full rebuild: the metadata catalog and the chunk collection
are recreated, then each paper in the source directory goes through
extract → chunk → embed → buffer → flush.
"""
