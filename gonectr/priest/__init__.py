"""Generation of priest registration functions from marked Go functions."""