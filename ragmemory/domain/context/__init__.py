# This module handles retrieval-augmented context composition
 
# +---------------------+      +---------------------+
# |   Vector store      |      |   Runtime memory    |
# |---------------------|      |---------------------|
# | Documents           |      | Short-term log (20) |
# | Term-freq vectors   |      | Long-term log (50)  |
# | Cosine search       |      | Novelty gate        |
# +---------------------+      +---------------------+
#            \                        /
#             \                      /
#              v                    v
# +----------------------------------------+
# |          Context composer              |
# |----------------------------------------|
# | Top-K similar past interactions        |
# | Recent long-term image reminders       |
# +----------------------------------------+
#                     |
#                     v
#          [downstream generation prompt]
#
# Every collection is persisted as a full snapshot through a KeyValueStore.
